from __future__ import annotations

import logging
import re

logger = logging.getLogger("rpms.publication_id")

PUBLICATION_ID_PREFIX = "SMU_P"
PUBLICATION_ID_SEED_NUMBER = 201817001
PUBLICATION_ID_SEED = f"{PUBLICATION_ID_PREFIX}{PUBLICATION_ID_SEED_NUMBER}"

# prefix + 1~18 位数字（上限保证后缀可放入数据库 bigint）
_MIN_LENGTH = len(PUBLICATION_ID_PREFIX) + 1
_PATTERN = re.compile(rf"^{re.escape(PUBLICATION_ID_PREFIX)}(\d{{1,18}})$")


def is_publication_id(value: str | None) -> bool:
    return bool(_PATTERN.match(str(value or "")))


def parse_publication_number(value: str | None) -> int | None:
    """
    解析出版编号的数字后缀：SMU_P201817001 -> 201817001

    前缀错误、后缀非数字或长度不足时返回 None。
    """
    raw = str(value or "")
    if len(raw) < _MIN_LENGTH:
        return None
    match = _PATTERN.match(raw)
    if not match:
        return None
    return int(match.group(1))


def format_publication_id(number: int) -> str:
    # 不做补零：数字宽度随增长自然变化（历史约定 9 位，但不强制）
    return f"{PUBLICATION_ID_PREFIX}{number}"


def next_publication_id(current_max: str | None) -> str:
    """
    根据当前已分配的最大编号计算下一个出版编号。

    规则:
    - 从未分配过 / 存储值无法解析 -> 返回种子值 SMU_P201817001
    - 否则数字后缀 +1

    中文注释:
    - 解析失败回退到种子值是历史行为（fail-open）。若库中已有更大的编号，
      回退会产生重复编号，因此这里记录 warning 以便排查。
    - current_max 由调用方按字典序取最大值，SMU_P999999999 与 SMU_P1000000000
      比较时会选中前者；数据库计数器分配方式（sequence 策略）不受此影响。
    """
    if not current_max:
        return PUBLICATION_ID_SEED

    number = parse_publication_number(current_max)
    if number is None:
        logger.warning(
            f"[PublicationID] unparseable stored maximum {current_max!r}, falling back to seed "
            f"{PUBLICATION_ID_SEED} (duplicate risk)"
        )
        return PUBLICATION_ID_SEED

    return format_publication_id(number + 1)
