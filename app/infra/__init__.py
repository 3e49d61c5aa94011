"""永続化まわりの基盤 (Unit of Work, キャッシュ, リトライ, DB エラー変換)。"""

from .unit_of_work import SqlAlchemyUnitOfWork, UnitOfWork

__all__ = ["SqlAlchemyUnitOfWork", "UnitOfWork"]
