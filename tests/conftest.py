from __future__ import annotations

import pytest


def _pdf_string(text: str) -> str:
    return text.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")


def build_pdf(pages: list[list[str]], info: dict[str, str] | None = None) -> bytes:
    """Build a minimal PDF with one Helvetica text line per entry, 14pt apart."""
    objects: dict[int, bytes] = {}
    page_ids = [4 + 2 * i for i in range(len(pages))]
    kids = " ".join(f"{pid} 0 R" for pid in page_ids)

    objects[1] = b"<< /Type /Catalog /Pages 2 0 R >>"
    objects[2] = f"<< /Type /Pages /Kids [{kids}] /Count {len(pages)} >>".encode()
    objects[3] = b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>"

    for pid, lines in zip(page_ids, pages):
        objects[pid] = (
            f"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
            f"/Resources << /Font << /F1 3 0 R >> >> /Contents {pid + 1} 0 R >>"
        ).encode()
        ops = ["BT", "/F1 12 Tf", "14 TL", "72 720 Td"]
        ops.extend(f"({_pdf_string(line)}) Tj T*" for line in lines)
        ops.append("ET")
        stream = "\n".join(ops).encode("latin-1")
        objects[pid + 1] = (
            b"<< /Length %d >>\nstream\n" % len(stream) + stream + b"\nendstream"
        )

    info_id = None
    if info:
        info_id = 4 + 2 * len(pages)
        entries = " ".join(f"/{k} ({_pdf_string(v)})" for k, v in info.items())
        objects[info_id] = f"<< {entries} >>".encode("latin-1")

    out = bytearray(b"%PDF-1.4\n")
    offsets: dict[int, int] = {}
    for oid in sorted(objects):
        offsets[oid] = len(out)
        out += b"%d 0 obj\n" % oid + objects[oid] + b"\nendobj\n"

    xref_at = len(out)
    size = max(objects) + 1
    out += b"xref\n0 %d\n" % size
    out += b"0000000000 65535 f \n"
    for oid in range(1, size):
        out += b"%010d 00000 n \n" % offsets[oid]

    trailer = f"<< /Size {size} /Root 1 0 R"
    if info_id:
        trailer += f" /Info {info_id} 0 R"
    trailer += " >>"
    out += b"trailer\n" + trailer.encode() + b"\nstartxref\n%d\n%%%%EOF\n" % xref_at
    return bytes(out)


# Page-count markers are present but there is no xref, trailer or catalog
BROKEN_PDF = (
    b"%PDF-1.7\n% truncated upload\n"
    b"/Type /Pages /Count 3\n/Type /Page\n/Type /Page\n/Type /Page\n"
)


@pytest.fixture
def make_pdf():
    return build_pdf


@pytest.fixture
def three_chapter_pdf() -> bytes:
    return build_pdf(
        [
            ["Chapter 1: Intro", "Where it all starts.", "Setting the scene."],
            ["Chapter 2: Growth", "Scaling the shop.", "Hiring the first staff."],
            ["Chapter 3: Exit", "Selling the business.", "Closing words."],
        ],
        info={"Title": "Small Business Handbook", "Author": "Dana Reyes"},
    )


@pytest.fixture
def broken_pdf() -> bytes:
    return BROKEN_PDF
