# Copyright (c) 2024 Yilin Zou
import datetime
import os

import pytest

from mshoot.post import (
    PostError,
    check_front_matter,
    check_math,
    check_post,
    local_links,
    parse_post,
)

POSTS = os.path.join(os.path.dirname(__file__), "..", "..", "docs", "posts")

VALID = """---
title: A post
author: Someone
date: 2024-05-20
tags: [optimal control]
---
Body with $x$ and

$$
y = 1
$$
"""


class TestParse:
    def test_valid(self):
        post = parse_post(VALID)
        assert post.front_matter["title"] == "A post"
        assert post.front_matter["date"] == datetime.date(2024, 5, 20)
        assert post.body.startswith("Body with")

    @pytest.mark.parametrize(
        "text",
        [
            "",
            "no front matter\n",
            "---\ntitle: unterminated\n",
            "---\ntitle: [unclosed\n---\nbody\n",
            "---\n- a\n- b\n---\nbody\n",
        ],
    )
    def test_invalid(self, text):
        with pytest.raises(PostError):
            parse_post(text)

    def test_empty_front_matter(self):
        post = parse_post("---\n---\nbody\n")
        assert post.front_matter == {}
        assert check_front_matter(post.front_matter)


class TestFrontMatter:
    def test_valid(self):
        assert check_front_matter(parse_post(VALID).front_matter) == []

    def test_missing(self):
        problems = check_front_matter({"title": "t", "author": "a"})
        assert len(problems) == 2
        assert any("date" in p for p in problems)
        assert any("tags" in p for p in problems)

    def test_types(self):
        fm = {"title": "", "author": 3, "date": "yesterday", "tags": "casadi"}
        assert len(check_front_matter(fm)) == 4
        fm = {"title": "t", "author": "a", "date": datetime.date.today(), "tags": []}
        assert len(check_front_matter(fm)) == 1


class TestMath:
    def test_balanced(self):
        assert check_math("Inline $a$ and $b$.\n\n$$\nc\n$$\n") == []

    def test_unbalanced_display(self):
        assert check_math("$$\na\n") != []

    def test_unbalanced_inline(self):
        problems = check_math("Fine $a$.\n\nBroken $b.\n")
        assert len(problems) == 1 and "paragraph 2" in problems[0]

    @pytest.mark.parametrize(
        "body",
        [
            "Fine $a$.\n  \t\nBroken $b.\n",
            "Fine $a$.\r\n\r\nBroken $b.\r\n",
            "Fine $a$.\r\rBroken $b.\r",
        ],
    )
    def test_paragraph_separators(self, body):
        problems = check_math(body)
        assert len(problems) == 1 and "paragraph 2" in problems[0]

    def test_ignores_code_and_escapes(self):
        body = "Costs \\$5.\n\n```bash\necho $HOME\n```\n\nUse `$PATH` here.\n"
        assert check_math(body) == []


class TestLinks:
    def test_local_links(self):
        body = (
            "[script](../examples/run.py) ![plot](img/plot.png \"Plot\") "
            "[web](https://web.casadi.org/) [mail](mailto:a@b.c) [top](#top) "
            "[section](other.md#part)\n\n`[not](a_link.md)`\n"
        )
        assert local_links(body) == ["../examples/run.py", "img/plot.png", "other.md"]

    def test_check_post(self, tmp_path):
        (tmp_path / "img").mkdir()
        (tmp_path / "img" / "plot.png").write_bytes(b"")
        (tmp_path / "post.md").write_text(
            VALID + "\n![plot](img/plot.png) [gone](missing.py) [root](/img/plot.png)\n"
        )
        problems = check_post(str(tmp_path / "post.md"))
        assert problems == ["link target 'missing.py' does not exist"]

    def test_repository_posts(self):
        posts = [f for f in os.listdir(POSTS) if f.endswith(".md")]
        assert posts
        for f in posts:
            assert check_post(os.path.join(POSTS, f)) == []

    def test_repository_post_images(self):
        path = os.path.join(POSTS, "2024-05-20-multiple-shooting.md")
        with open(path, encoding="utf-8") as f:
            post = parse_post(f.read())
        images = [t for t in local_links(post.body) if t.endswith((".svg", ".png"))]
        assert images
        for target in images:
            assert os.path.isfile(os.path.join(POSTS, target))
