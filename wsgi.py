import os, argparse
from autozona import create_app

def parse_args():
    """解析命令行参数"""
    parser = argparse.ArgumentParser(description="AutoZona API Server")
    parser.add_argument('--debug', action='store_true', help='Enable debug mode')
    parser.add_argument('--host', help='Override default host binding')
    parser.add_argument('--port', type=int, default=5000, help='Port to listen on')
    return parser.parse_args()

def main():
    """主函数入口"""
    args = parse_args()

    # 根据调试模式选择配置
    config = "config.DevelopmentConfig" if args.debug else "config.ProductionConfig"
    app = create_app(config)

    mode = "开发" if args.debug else "生产"
    app.logger.info(f"🔧 {mode}模式：{'启用' if args.debug else '禁用'}调试")

    host = args.host if args.host else '0.0.0.0'
    port = args.port if args.port else 5000

    app.logger.info(f"🚀 服务监听在: http://{host}:{port}")
    app.run(host=host, port=port, debug=os.getenv('FLASK_DEBUG') == '1', use_reloader=False)

if __name__ == '__main__':
    main()
