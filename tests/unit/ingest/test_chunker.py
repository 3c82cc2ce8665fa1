"""Tests for the line-window code chunker."""

from __future__ import annotations

import pytest

from codelens.ingest.chunker import CodeChunker, chunk_file, chunk_project


def _lines(n: int) -> str:
    return "\n".join(f"line {i}" for i in range(1, n + 1))


# ------------------------------------------------------------------
# Small files
# ------------------------------------------------------------------


def test_small_file_is_single_chunk_with_path_header():
    content = "export const a = 1;\nexport const b = 2;"
    chunks = chunk_file("src/consts.ts", content)
    assert len(chunks) == 1
    assert chunks[0].content == f"// src/consts.ts\n{content}"
    assert chunks[0].chunk_index == 0
    assert chunks[0].file_path == "src/consts.ts"


def test_exactly_chunk_size_lines_is_single_chunk():
    chunks = chunk_file("a.py", _lines(200))
    assert len(chunks) == 1
    assert chunks[0].content.startswith("// a.py\n")


def test_empty_file_still_produces_header_chunk():
    chunks = chunk_file("empty.txt", "")
    assert [c.content for c in chunks] == ["// empty.txt\n"]


# ------------------------------------------------------------------
# Windows
# ------------------------------------------------------------------


def test_250_lines_gives_two_overlapping_windows():
    chunks = chunk_file("big.py", _lines(250))
    assert len(chunks) == 2

    first_header, first_body = chunks[0].content.split("\n", 1)
    second_header, second_body = chunks[1].content.split("\n", 1)
    assert first_header == "// big.py (lines 1-200)"
    assert second_header == "// big.py (lines 181-250)"
    assert first_body.splitlines()[0] == "line 1"
    assert first_body.splitlines()[-1] == "line 200"
    assert second_body.splitlines()[0] == "line 181"
    assert second_body.splitlines()[-1] == "line 250"


def test_consecutive_windows_share_overlap_lines():
    chunks = chunk_file("big.py", _lines(500))
    first = chunks[0].content.split("\n")[1:]
    second = chunks[1].content.split("\n")[1:]
    assert first[-20:] == second[:20]


@pytest.mark.parametrize("n_lines", [201, 380, 401, 1000])
def test_windows_overlap_by_20_and_cover_every_line(n_lines):
    chunks = chunk_file("f.py", _lines(n_lines))
    ranges = []
    for chunk in chunks:
        header = chunk.content.split("\n", 1)[0]
        start, end = header.rsplit("(lines ", 1)[1].rstrip(")").split("-")
        ranges.append((int(start), int(end)))

    assert ranges[0][0] == 1
    assert ranges[-1][1] == n_lines
    for (_, prev_end), (next_start, next_end) in zip(ranges, ranges[1:]):
        assert prev_end - next_start + 1 == 20
        assert next_end > prev_end or next_end == n_lines

    covered = set()
    for start, end in ranges:
        covered.update(range(start, end + 1))
    assert covered == set(range(1, n_lines + 1))


def test_window_advances_until_start_passes_end():
    # 380 lines: starts at 0, 180, 360 -> the last window is fully inside the second.
    chunks = chunk_file("x.py", _lines(380))
    headers = [c.content.split("\n", 1)[0] for c in chunks]
    assert headers == [
        "// x.py (lines 1-200)",
        "// x.py (lines 181-380)",
        "// x.py (lines 361-380)",
    ]
    assert [c.chunk_index for c in chunks] == [0, 1, 2]


def test_custom_window():
    chunks = CodeChunker(chunk_size=4, overlap=1).chunk("f.txt", _lines(7))
    headers = [c.content.split("\n", 1)[0] for c in chunks]
    assert headers == [
        "// f.txt (lines 1-4)",
        "// f.txt (lines 4-7)",
        "// f.txt (lines 7-7)",
    ]


def test_chunking_is_deterministic():
    content = _lines(450)
    assert chunk_file("a.py", content) == chunk_file("a.py", content)


# ------------------------------------------------------------------
# Projects + validation
# ------------------------------------------------------------------


def test_chunk_project_preserves_file_order():
    chunks = chunk_project({"b.py": "b", "a.py": _lines(250)})
    assert [c.file_path for c in chunks] == ["b.py", "a.py", "a.py"]


def test_chunk_project_empty_map():
    assert chunk_project({}) == []


@pytest.mark.parametrize("size,overlap", [(0, 0), (10, 10), (10, -1)])
def test_invalid_window_rejected(size, overlap):
    with pytest.raises(ValueError):
        CodeChunker(chunk_size=size, overlap=overlap)
