"""
Workload – staff, course and task administration.

Three entity modules (Staff, Course, Task) share one workflow:
list -> form -> detail, role-gated mutation, filtering, sequential ids
and persistence of whole collections to a local JSON store.
"""

from pathlib import Path

__version__ = (Path(__file__).resolve().parent / "VERSION").read_text(encoding="utf-8").strip()
