# Copyright (c) 2024 Yilin Zou
"""Content checks of the blog post.

The post is a Markdown file with a YAML front matter block::

    ---
    title: ...
    author: ...
    date: 2024-05-20
    tags: [optimal control, casadi]
    ---

followed by Markdown with LaTeX math (``$...$`` inline, ``$$...$$`` display).
The checks catch what breaks the rendering: malformed front matter,
unbalanced math delimiters and links to files that do not exist.
"""
import datetime
import os
import re
from collections import namedtuple

import yaml

REQUIRED_KEYS = ("title", "author", "date", "tags")
"""Keys the front matter must define."""

_FENCE = re.compile(r"^(```|~~~).*?^\1[ \t]*$", re.MULTILINE | re.DOTALL)
_INLINE_CODE = re.compile(r"`[^`\n]*`")
_DISPLAY_MATH = re.compile(r"\$\$.*?\$\$", re.DOTALL)
_DOLLAR = re.compile(r"(?<!\\)\$")
_BLANK_LINE = re.compile(r"\n[ \t]*\n")
_LINK = re.compile(r"!?\[[^\]]*\]\(\s*<?([^)\s>]+)>?(?:\s+\"[^\"]*\")?\s*\)")
_SCHEME = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*:")


class PostError(ValueError):
    """Raised when a post cannot be parsed."""


class Post(namedtuple("Post", ["front_matter", "body"])):
    """Named tuple to store a parsed post."""

    front_matter: dict
    """Metadata of the post."""
    body: str
    """Markdown content after the front matter."""


def parse_post(text: str) -> Post:
    """Split a post into its YAML front matter and its Markdown body.

    Args:
        text: Content of the post.

    Returns:
        The parsed ``Post``.

    Raises:
        PostError: If the front matter is missing, unterminated, not valid
            YAML, or not a mapping.
    """
    lines = text.splitlines(keepends=True)
    if not lines or lines[0].strip() != "---":
        raise PostError("post must start with a front matter block delimited by ---")
    for i, line in enumerate(lines[1:], start=1):
        if line.strip() == "---":
            break
    else:
        raise PostError("front matter block is not terminated by ---")

    try:
        front_matter = yaml.safe_load("".join(lines[1:i]))
    except yaml.YAMLError as e:
        raise PostError(f"front matter is not valid YAML: {e}") from e
    if front_matter is None:
        front_matter = {}
    if not isinstance(front_matter, dict):
        raise PostError("front matter must be a mapping")
    return Post(front_matter, "".join(lines[i + 1 :]))


def check_front_matter(front_matter: dict) -> list[str]:
    """Return the problems found in the front matter (empty if valid)."""
    problems = []
    for key in REQUIRED_KEYS:
        if key not in front_matter:
            problems.append(f"front matter misses {key!r}")
    for key in "title", "author":
        value = front_matter.get(key)
        if key in front_matter and (not isinstance(value, str) or not value.strip()):
            problems.append(f"front matter {key!r} must be a non-empty string")
    if "date" in front_matter and not isinstance(front_matter["date"], datetime.date):
        problems.append("front matter 'date' must be a date (YYYY-MM-DD)")
    if "tags" in front_matter:
        tags = front_matter["tags"]
        if (
            not isinstance(tags, list)
            or not tags
            or not all(isinstance(t, str) and t.strip() for t in tags)
        ):
            problems.append("front matter 'tags' must be a non-empty list of strings")
    return problems


def strip_code(body: str) -> str:
    """Remove fenced code blocks and inline code spans."""
    return _INLINE_CODE.sub("", _FENCE.sub("", body))


def check_math(body: str) -> list[str]:
    """Return the problems found in the math delimiters (empty if valid).

    Dollar signs inside code and escaped dollar signs (``\\$``) are ignored.
    """
    text = strip_code(body.replace("\r\n", "\n").replace("\r", "\n"))
    problems = []
    if text.count("$$") % 2:
        problems.append("unbalanced $$ display math delimiters")
        return problems
    text = _DISPLAY_MATH.sub("", text)
    for n, paragraph in enumerate(_BLANK_LINE.split(text)):
        if len(_DOLLAR.findall(paragraph)) % 2:
            problems.append(
                f"unbalanced $ inline math delimiters in paragraph {n + 1}"
            )
    return problems


def local_links(body: str) -> list[str]:
    """Return the targets of links and images that point to local files.

    Links with a URL scheme (``https:``, ``mailto:``...) and in-page anchors
    are not local. Fragments are removed from the targets.
    """
    targets = []
    for target in _LINK.findall(strip_code(body)):
        if _SCHEME.match(target) or target.startswith("#"):
            continue
        target = target.split("#", 1)[0]
        if target:
            targets.append(target)
    return targets


def check_post(path: str, root: str | None = None) -> list[str]:
    """Check a post file.

    Relative link targets are resolved from the directory of the post,
    absolute ones (starting with ``/``) from ``root``.

    Args:
        path: Path to the Markdown file.
        root: Directory absolute link targets are resolved from;
            defaults to the directory of the post.

    Returns:
        The problems found, empty if the post is valid.

    Raises:
        PostError: If the post cannot be parsed.
    """
    with open(path, encoding="utf-8") as f:
        post = parse_post(f.read())

    base = os.path.dirname(os.path.abspath(path))
    root = base if root is None else root

    problems = check_front_matter(post.front_matter)
    problems += check_math(post.body)
    for target in local_links(post.body):
        if target.startswith("/"):
            file = os.path.join(root, target.lstrip("/"))
        else:
            file = os.path.join(base, target)
        if not os.path.exists(file):
            problems.append(f"link target {target!r} does not exist")
    return problems
