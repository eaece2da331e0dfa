# order_index/services/query_clauses.py
"""
结构化谓词：一组带类型的子句对象，统一降级为 `:param` 占位的 SQL。

列名只来自索引表的静态描述；用户输入只会进入绑定参数。
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Tuple, Union

LIKE_ESCAPE = "\\"


def escape_like(value: str) -> str:
    return (
        value.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


def like_pattern(raw: str) -> str:
    """
    通配规则（比较值一律小写）：
      *abc   → '%abc'   以 abc 结尾
      abc*   → 'abc%'   以 abc 开头
      *abc*  → '%abc%'  包含
      abc    → '%abc%'  默认包含
    """
    v = (raw or "").strip().lower()
    lead = v.startswith("*")
    trail = v.endswith("*")
    core = escape_like(v.strip("*"))

    if lead and not trail:
        return f"%{core}"
    if trail and not lead:
        return f"{core}%"
    return f"%{core}%"


@dataclass
class ParamNamer:
    """为一次改写生成不冲突的参数名（coi_0, coi_1, ...）。"""

    prefix: str = "coi"
    params: Dict[str, Any] = field(default_factory=dict)

    def bind(self, value: Any) -> str:
        name = f"{self.prefix}_{len(self.params)}"
        self.params[name] = value
        return f":{name}"


@dataclass(frozen=True)
class Equals:
    column: str
    value: Any

    def lower(self, namer: ParamNamer) -> str:
        return f"{self.column} = {namer.bind(self.value)}"


@dataclass(frozen=True)
class Like:
    column: str
    pattern: str
    as_text: bool = False  # 数值列先 CAST 成文本再 LIKE

    def lower(self, namer: ParamNamer) -> str:
        col = f"CAST({self.column} AS TEXT)" if self.as_text else self.column
        return f"{col} LIKE {namer.bind(self.pattern)} ESCAPE '{LIKE_ESCAPE}'"


@dataclass(frozen=True)
class AnyOf:
    clauses: Tuple["Clause", ...]

    def lower(self, namer: ParamNamer) -> str:
        parts = [c.lower(namer) for c in self.clauses]
        if len(parts) == 1:
            return parts[0]
        return "(" + " OR ".join(parts) + ")"


@dataclass(frozen=True)
class AllOf:
    clauses: Tuple["Clause", ...]

    def lower(self, namer: ParamNamer) -> str:
        parts = [c.lower(namer) for c in self.clauses]
        if len(parts) == 1:
            return parts[0]
        return "(" + " AND ".join(parts) + ")"


Clause = Union[Equals, Like, AnyOf, AllOf]


def like_any(columns: Tuple[str, ...], raw: str, *, cast_columns: Tuple[str, ...] = ()) -> AnyOf:
    """同一个通配值对多列 OR；cast_columns 为数值列，先 CAST AS TEXT。"""
    pattern = like_pattern(raw)
    return AnyOf(tuple(Like(c, pattern, as_text=c in cast_columns) for c in columns))
