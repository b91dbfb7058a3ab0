"""End-to-end: real .docx files written by python-docx, converted through the public API and the CLI."""
from __future__ import annotations

import io

import docx
import pytest

from converter_settings import ConverterSettings
from docx_model import DocxImportError
from docx_to_md import convert_docx, default_output_path, main, sanitize_file_name
from tests.helpers import PNG_BYTES


def _build_docx(path=None) -> bytes:
    document = docx.Document()
    document.add_heading("Report", level=1)
    p = document.add_paragraph("Plain ")
    p.add_run("bold").bold = True
    p.add_run(" and ")
    p.add_run("italic").italic = True
    document.add_heading("Data", level=2)
    table = document.add_table(rows=2, cols=2)
    table.cell(0, 0).text = "A"
    table.cell(0, 1).text = "B"
    table.cell(1, 0).text = "1"
    table.cell(1, 1).text = "x|y"
    document.add_picture(io.BytesIO(PNG_BYTES))
    buf = io.BytesIO()
    document.save(buf)
    data = buf.getvalue()
    if path is not None:
        path.write_bytes(data)
    return data


def test_convert_docx_bytes():
    result = convert_docx(_build_docx())
    assert result.markdown == "\n".join([
        "# Report",
        "",
        "Plain **bold** and *italic*",
        "",
        "## Data",
        "",
        "| A | B |",
        "| --- | --- |",
        "| 1 | x\\|y |",
        "",
        "![](attachments/image1.png)",
        "",
    ])
    assert result.warnings == []
    assert result.images == {"image1.png": PNG_BYTES}


def test_convert_docx_settings_are_applied():
    settings = ConverterSettings(image_folder="media files", table_alignment="right")
    markdown = convert_docx(_build_docx(), settings).markdown
    assert "| ---: | ---: |" in markdown
    assert "![](<media files/image1.png>)" in markdown


def test_convert_docx_rejects_non_docx(tmp_path):
    bogus = tmp_path / "bogus.docx"
    bogus.write_bytes(b"plain text")
    with pytest.raises(DocxImportError):
        convert_docx(str(bogus))


def test_cli_writes_markdown_and_images(tmp_path):
    source = tmp_path / "My Report.docx"
    _build_docx(source)
    out = tmp_path / "out" / "report.md"
    code = main([str(source), "-o", str(out), "--log-root", str(tmp_path / "logs"), "--table-align", "center"])
    assert code == 0
    text = out.read_text(encoding="utf-8")
    assert text.startswith("# Report\n")
    assert "| :---: | :---: |" in text
    assert (tmp_path / "out" / "attachments" / "image1.png").read_bytes() == PNG_BYTES
    user_log = (tmp_path / "logs" / "My Report.user.log").read_text(encoding="utf-8")
    assert "[REPORT] warnings=0" in user_log


def test_cli_default_output_next_to_input(tmp_path):
    source = tmp_path / "notes.docx"
    _build_docx(source)
    assert main([str(source), "--no-numbering", "--log-root", str(tmp_path / "logs")]) == 0
    assert (tmp_path / "notes.md").exists()


def test_cli_fails_on_invalid_container(tmp_path):
    source = tmp_path / "broken.docx"
    source.write_bytes(b"not a zip")
    out = tmp_path / "broken.md"
    assert main([str(source), "-o", str(out), "--log-root", str(tmp_path / "logs")]) == 1
    assert not out.exists()


def test_cli_missing_input(tmp_path):
    assert main([str(tmp_path / "nothing.docx")]) == 2


def test_output_names_are_sanitized():
    assert sanitize_file_name('a:b*c?"d"') == "a_b_c_d_"
    assert sanitize_file_name("...") == "document"
    assert default_output_path("/tmp/x/re:port.docx").endswith("re_port.md")
