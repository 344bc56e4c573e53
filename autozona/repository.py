"""
通用仓储

基于谓词的 get / get_all / count / insert / update / delete 封装，
以及 atomic() 工作单元：嵌套使用时只在最外层提交，任何异常都整体回滚。
所有 SQLAlchemyError 都会记录日志后转换为业务异常继续抛出：
唯一性等完整性冲突 -> ConflictError，其余 -> StoreFailureError。
"""
from contextlib import contextmanager
from functools import wraps
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from .extensions import db
from .utils.errors import ConflictError, StoreFailureError
from .utils.logger import get_logger

logger = get_logger(__name__)

_DEPTH_KEY = 'autozona.atomic_depth'


def _translate(error: SQLAlchemyError, action: str):
    """将数据库异常转换为业务异常"""
    if isinstance(error, IntegrityError):
        return ConflictError(f"{action}违反数据约束")
    return StoreFailureError(f"{action}失败")


def _log_store_error(error: SQLAlchemyError, action: str):
    if isinstance(error, IntegrityError):
        logger.warning(f"{action}违反数据约束: {error.orig}")
    else:
        logger.error(f"{action}失败: {str(error)}", exc_info=True)


@contextmanager
def atomic(session=None):
    """
    数据库事务上下文

    with atomic():
        repo.update(a)
        repo.delete(b)
    # 退出最外层 with 时提交，异常时回滚
    """
    session = session or db.session
    depth = session.info.get(_DEPTH_KEY, 0)
    session.info[_DEPTH_KEY] = depth + 1
    try:
        yield session
        if depth == 0:
            session.commit()
    except SQLAlchemyError as e:
        if depth == 0:
            session.rollback()
        _log_store_error(e, "数据库事务")
        raise _translate(e, "数据库事务") from e
    except Exception:
        if depth == 0:
            session.rollback()
        raise
    finally:
        session.info[_DEPTH_KEY] = depth


def _store_read(action):
    """读操作的异常转换装饰器"""
    def decorator(f):
        @wraps(f)
        def wrapper(self, *args, **kwargs):
            try:
                return f(self, *args, **kwargs)
            except SQLAlchemyError as e:
                message = f"{self.model.__name__} {action}"
                _log_store_error(e, message)
                raise _translate(e, message) from e
        return wrapper
    return decorator


class Repository:
    """单个模型的仓储"""

    def __init__(self, model, session=None):
        self.model = model
        self._session = session

    @property
    def session(self):
        return self._session or db.session

    def query(self, *criteria, order_by: Sequence = (), options: Sequence = (),
              for_update: bool = False):
        """构造查询：criteria 之间为 AND 关系"""
        q = self.session.query(self.model).filter(*criteria)
        if options:
            q = q.options(*options)
        if order_by:
            q = q.order_by(*order_by)
        if for_update:
            # 在支持的数据库上加行锁(SQLite 会忽略)
            q = q.with_for_update()
        return q

    @_store_read("查询")
    def get(self, *criteria, order_by: Sequence = (), options: Sequence = (),
            for_update: bool = False) -> Optional[Any]:
        return self.query(*criteria, order_by=order_by, options=options, for_update=for_update).first()

    @_store_read("查询列表")
    def get_all(self, *criteria, order_by: Sequence = (), options: Sequence = (),
                offset: Optional[int] = None, limit: Optional[int] = None) -> List[Any]:
        q = self.query(*criteria, order_by=order_by, options=options)
        if offset:
            q = q.offset(offset)
        if limit is not None:
            q = q.limit(limit)
        return q.all()

    @_store_read("计数")
    def count(self, *criteria) -> int:
        return self.query(*criteria).order_by(None).count()

    @_store_read("存在性检查")
    def exists(self, *criteria) -> bool:
        return self.session.query(self.query(*criteria).exists()).scalar()

    @_store_read("字段查询")
    def values(self, column, *criteria, distinct: bool = False, order_by: Sequence = ()) -> List[Any]:
        """只查询单个字段，相当于 select column where ..."""
        q = self.session.query(column).filter(*criteria)
        if distinct:
            q = q.distinct()
        if order_by:
            q = q.order_by(*order_by)
        return [row[0] for row in q.all()]

    @_store_read("分组统计")
    def group_counts(self, column, *criteria) -> List[Tuple[Any, int]]:
        """按字段分组计数，返回 [(取值, 数量), ...]"""
        q = self.session.query(column, func.count()).filter(*criteria).group_by(column)
        return [(key, count) for key, count in q.all()]

    def insert(self, entity):
        with atomic(self.session):
            self.session.add(entity)
            self.session.flush()
        return entity

    def insert_all(self, entities: Iterable[Any]) -> List[Any]:
        entities = list(entities)
        with atomic(self.session):
            self.session.add_all(entities)
            self.session.flush()
        return entities

    def update(self, entity):
        """整行覆盖写入，最后写入者生效"""
        with atomic(self.session):
            entity = self.session.merge(entity)
            self.session.flush()
        return entity

    def delete(self, entity):
        with atomic(self.session):
            self.session.delete(entity)
            self.session.flush()
