import click
from sqlalchemy import inspect
from .extensions import db

def register_commands(app):
    @app.cli.command("init-db")
    def init_db():
        """初始化数据库."""
        with app.app_context():
            logger = app.logger

            # 记录开始初始化
            logger.info("🚀 Starting database initialization")
            logger.info(f"🔧 Database URI: {app.config['SQLALCHEMY_DATABASE_URI']}")

            # 确保模型已导入
            from . import models  # noqa: F401

            try:
                db.create_all()
                tables = inspect(db.engine).get_table_names()
                logger.info(f"📊 Created tables: {tables}")
            except Exception as e:
                logger.error(f"❌ Database creation failed: {str(e)}", exc_info=True)
                raise

            logger.info("🎉 Database initialization completed successfully")

    @app.cli.command("drop-tables")
    @click.option('--force', is_flag=True, help='跳过确认直接执行')
    def drop_tables(force):
        """删除所有数据库表（危险操作！）"""
        with app.app_context():
            logger = app.logger

            # 生产环境保护
            if app.config.get("ENV") == 'production' and not force:
                logger.error("❌ 生产环境禁止直接删除表！")
                return

            # 安全确认
            if not force:
                tables = inspect(db.engine).get_table_names()
                click.echo("\n⚠️ 将要删除以下表：")
                for table in tables:
                    click.echo(f"  - {table}")

                if not click.confirm("\n❗ 确认要删除所有表吗？此操作不可恢复！"):
                    logger.info("取消删除操作")
                    return

            from . import models  # noqa: F401

            try:
                logger.warning("🗑️ 开始删除数据库表...")
                db.drop_all()

                remaining_tables = inspect(db.engine).get_table_names()
                if not remaining_tables:
                    logger.info("✅ 所有表已成功删除")
                else:
                    logger.error(f"❌ 表删除不完整，剩余表: {remaining_tables}")
            except Exception as e:
                logger.error(f"删除表失败: {str(e)}", exc_info=True)
                raise

    @app.cli.command("listing-stats")
    def listing_stats():
        """输出在售车源统计."""
        from .services import listing_engine

        with app.app_context():
            stats = listing_engine().statistics()

            click.echo(f"在售车源: {stats['total_active']}")
            click.echo(f"平均价格: {stats['average_price']}")
            for title, key in (("品牌", "makes"), ("车身类型", "body_types"), ("年份", "years")):
                click.echo(f"\n{title}:")
                for value, count in stats[key].items():
                    click.echo(f"  {value!s:20} {count}")
