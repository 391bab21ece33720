from __future__ import annotations


def clean_text(value: str | None) -> str | None:
    text = (value or "").strip()
    return text or None


def parse_tags(raw) -> list[str]:
    if not raw:
        return []
    if isinstance(raw, (list, tuple)):
        tokens = [str(item) for item in raw if item is not None]
    else:
        tokens = str(raw).split(",")

    names: list[str] = []
    seen: set[str] = set()
    for token in tokens:
        name = token.strip()
        if name and name not in seen:
            seen.add(name)
            names.append(name)
    return names
