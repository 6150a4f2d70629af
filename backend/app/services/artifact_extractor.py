"""Pull code and markup artifacts out of assistant responses.

Everything here is pure: the same response text always yields the same
artifacts, and nothing touches the workspace tree. The caller decides what
to do with name collisions via ``resolve_collisions``.
"""

import re
from typing import List, Optional

from app.schemas.workspace import Artifact

HTML_ARTIFACT_NAME = "index.html"
GENERATED_STEM = "generated"
FALLBACK_EXTENSION = "txt"

# Opening fence at column 0 with an optional language tag, closing fence alone on its line
_FENCE_RE = re.compile(
    r"^```[ \t]*([^\n`]*)\n(.*?)^```[ \t]*$",
    flags=re.MULTILINE | re.DOTALL,
)


def extract(response_text: str, structured_html: Optional[str] = None) -> List[Artifact]:
    """
    Extract artifacts from one assistant response.

    Args:
        response_text: Free-text model output, possibly containing fenced blocks
        structured_html: Optional side-channel HTML returned next to the text

    Returns:
        The HTML artifact first (if any), then one code artifact per non-empty
        fenced region in order of appearance. Every code artifact is named
        ``generated.<ext>``, so several blocks in one response share a name.
    """
    artifacts: List[Artifact] = []

    if structured_html:
        artifacts.append(
            Artifact(kind="markup", language="html", body=structured_html, name=HTML_ARTIFACT_NAME)
        )

    text = (response_text or "").replace("\r\n", "\n")
    for match in _FENCE_RE.finditer(text):
        tag, body = match.group(1).strip(), match.group(2)
        if body.endswith("\n"):
            body = body[:-1]
        if not body.strip():
            continue

        language = tag.split()[0] if tag else ""
        extension = language or FALLBACK_EXTENSION
        artifacts.append(
            Artifact(
                kind="code",
                language=language or FALLBACK_EXTENSION,
                body=body,
                name=f"{GENERATED_STEM}.{extension}",
            )
        )

    return artifacts


def find_collisions(artifacts: List[Artifact]) -> List[str]:
    """Names shared by more than one artifact, in order of first appearance."""
    seen = set()
    duplicated: List[str] = []
    for artifact in artifacts:
        if artifact.name in seen and artifact.name not in duplicated:
            duplicated.append(artifact.name)
        seen.add(artifact.name)
    return duplicated


def resolve_collisions(artifacts: List[Artifact], policy: str = "last_wins") -> List[Artifact]:
    """
    Apply a collision policy so that every returned artifact has a distinct name.

    - ``last_wins``: the last artifact with a name replaces earlier ones
    - ``first_wins``: later artifacts with an already-used name are dropped
    - ``auto_suffix``: later artifacts are renamed ``stem-2.ext``, ``stem-3.ext``...
    """
    if policy == "auto_suffix":
        return _suffix_duplicates(artifacts)

    by_name: dict[str, Artifact] = {}
    for artifact in artifacts:
        if policy == "first_wins":
            by_name.setdefault(artifact.name, artifact)
        elif policy == "last_wins":
            by_name[artifact.name] = artifact
        else:
            raise ValueError(f"Unknown collision policy: {policy}")
    return list(by_name.values())


def _suffix_duplicates(artifacts: List[Artifact]) -> List[Artifact]:
    used = set()
    resolved: List[Artifact] = []
    for artifact in artifacts:
        name = artifact.name
        if name in used:
            stem, dot, ext = name.rpartition(".")
            if not dot:
                stem, ext = name, ""
            counter = 2
            while True:
                candidate = f"{stem}-{counter}.{ext}" if dot else f"{stem}-{counter}"
                if candidate not in used:
                    break
                counter += 1
            name = candidate
        used.add(name)
        resolved.append(artifact.model_copy(update={"name": name}))
    return resolved
