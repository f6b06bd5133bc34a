from __future__ import annotations

import logging
from typing import Callable, Protocol, TypeVar

from app.core.exceptions import PublicationIdCollisionError
from app.core.publication_id import (
    PUBLICATION_ID_PREFIX,
    PUBLICATION_ID_SEED_NUMBER,
    format_publication_id,
    next_publication_id,
)

logger = logging.getLogger("rpms.publication_id")

T = TypeVar("T")


class PublicationNumberStore(Protocol):
    def get_max_publication_id(self, prefix: str) -> str | None: ...

    def reserve_publication_number(self, prefix: str, seed: int) -> int: ...


class PublicationIdAllocator:
    """
    出版编号分配器（SMU_P + 数字后缀）。

    策略:
    - sequence（默认）: 数据库计数器行原子自增，并发分配不会重复；
      计数器会与已存储的最大编号对齐，不会回退到种子值。
    - legacy: 读取当前最大值 +1（与旧系统一致）。读与写不是原子的，并发时可能得到相同编号，
      依赖 publication_id 唯一约束 + assign() 的冲突重试兜底。
    """

    def __init__(
        self,
        store: PublicationNumberStore,
        *,
        strategy: str = "sequence",
        max_attempts: int = 3,
    ) -> None:
        self.store = store
        self.strategy = strategy
        self.max_attempts = max(1, max_attempts)

    def allocate(self) -> str:
        if self.strategy == "legacy":
            return self.allocate_legacy()
        number = self.store.reserve_publication_number(PUBLICATION_ID_PREFIX, PUBLICATION_ID_SEED_NUMBER)
        return format_publication_id(number)

    def allocate_legacy(self) -> str:
        current_max = self.store.get_max_publication_id(PUBLICATION_ID_PREFIX)
        return next_publication_id(current_max)

    def assign(self, write: Callable[[str], T]) -> T:
        """
        分配编号并交给 write 落库；遇到唯一编号冲突时重新分配并重试。

        中文注释: 冲突重试次数用尽后抛出 PublicationIdCollisionError，由传输层返回 409。
        """
        last_error: PublicationIdCollisionError | None = None
        for attempt in range(1, self.max_attempts + 1):
            publication_id = self.allocate()
            try:
                return write(publication_id)
            except PublicationIdCollisionError as e:
                last_error = e
                logger.warning(
                    f"[PublicationID] collision on {publication_id} "
                    f"(attempt {attempt}/{self.max_attempts}, strategy={self.strategy})"
                )
        raise last_error or PublicationIdCollisionError(None)
