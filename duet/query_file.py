"""Markdown query files: body is the question, YAML front matter is the context."""

from pathlib import Path

import frontmatter

from duet.models import Context, HistoryEntry, Memory, Query


def _memories(raw: list) -> tuple[Memory, ...]:
    memories: list[Memory] = []
    for item in raw or []:
        if isinstance(item, str):
            memories.append(Memory(kind="fact", content=item))
        else:
            memories.append(
                Memory(
                    kind=str(item.get("kind", "fact")),
                    content=str(item["content"]),
                    importance=int(item.get("importance", 5)),
                )
            )
    return tuple(memories)


def _history(raw: list) -> tuple[HistoryEntry, ...]:
    return tuple(HistoryEntry(speaker=str(h["speaker"]), text=str(h["text"])) for h in raw or [])


def parse_file(file_path: Path) -> tuple[str, dict]:
    """Parse a markdown file with optional YAML front matter.

    Returns:
        (content, metadata). If no front matter, metadata is {}.
    """
    post = frontmatter.load(str(file_path))
    return post.content.strip(), dict(post.metadata)


def load_query(file_path: Path) -> Query:
    """Build a Query from a query file.

    Recognised front matter keys: language, location, date_time,
    visual_scene, user_name, memories (strings or {kind, content,
    importance}), ambient (list of lines), history (list of {speaker, text}).

    Raises:
        ValueError: If the file has no question body.
    """
    content, meta = parse_file(file_path)
    if not content:
        raise ValueError(f"No question text in {file_path}")

    context = Context(
        memories=_memories(meta.get("memories")),
        ambient_transcript=tuple(str(line) for line in meta.get("ambient") or []),
        location=meta.get("location"),
        date_time=str(meta["date_time"]) if meta.get("date_time") else None,
        visual_scene=meta.get("visual_scene"),
        user_name=meta.get("user_name"),
    )
    return Query(
        text=content,
        context=context,
        language=meta.get("language"),
        history=_history(meta.get("history")),
    )
