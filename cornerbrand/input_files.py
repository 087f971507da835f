from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

from cornerbrand.path_policy import FileKind, file_kind_for_extension


@dataclass(frozen=True)
class InputFile:
    path: str
    name: str
    ext: str
    kind: FileKind


def infer_input_file(path: str) -> InputFile | None:
    """Classify a dropped/selected path. None for blanks and unsupported types."""
    trimmed = path.strip()
    if not trimmed:
        return None

    # Accept both separators regardless of the host OS
    name = trimmed.replace("\\", "/").rsplit("/", 1)[-1]
    dot = name.rfind(".")
    ext = name[dot + 1:].lower() if dot >= 0 else ""

    kind = file_kind_for_extension(ext)
    if kind is FileKind.UNSUPPORTED:
        return None
    return InputFile(path=trimmed, name=name, ext=ext, kind=kind)


def add_paths_unique(
    existing: Sequence[InputFile], paths: Iterable[str]
) -> tuple[list[InputFile], list[str]]:
    """
    Append supported, not-yet-listed paths to ``existing``.

    Returns:
        (new list, paths rejected as unsupported). Duplicates are dropped
        silently and are not reported as rejected.
    """
    seen = {item.path for item in existing}
    updated = list(existing)
    rejected: list[str] = []

    for path in paths:
        item = infer_input_file(path)
        if item is None:
            rejected.append(path)
            continue
        if item.path in seen:
            continue
        seen.add(item.path)
        updated.append(item)

    return updated, rejected
