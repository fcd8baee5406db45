"""Interfaces to the platform services the background jobs call into."""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

Record = Dict[str, Any]


@dataclass
class LearningServices:
    """
    Async callables the handlers use for storage and AI work.

    Records are plain dicts. Videos carry `title`, `description`,
    `channel_title`, `inferred_skills`, `inferred_careers` and
    `codelearnn_score`; paths carry `structure_graph` (with a `nodes` list),
    `inferred_skills` and `inferred_careers`.
    """

    find_video: Callable[[str, str], Awaitable[Optional[Record]]]
    save_video: Callable[[Record], Awaitable[None]]
    analyze_video: Callable[[str, str, str], Awaitable[Record]]
    generate_suggestions: Callable[[str, str, str, Record], Awaitable[List[Any]]]
    calculate_readiness: Callable[[str, Optional[str]], Awaitable[Record]]
    update_path_readiness: Callable[[str, str], Awaitable[Any]]
    find_path: Callable[[str], Awaitable[Optional[Record]]]
    save_path: Callable[[Record], Awaitable[None]]
