# -*- coding: utf-8 -*-
"""
docx_to_md.py
- DOCX -> Markdown command-line entry point
- Images are written next to the output file ({out_dir}/{image_folder}/), unique names per file
- Settings: --settings JSON (or the usual search paths), CLI switches override individual keys
- Per-run user/debug logs through PipelineLogger; exit code 1 when the DOCX cannot be imported
"""
import argparse
import logging
import os
import re
import sys
import time
from typing import Optional, Union

from builders.image_block import ImageStore
from converter_settings import TABLE_ALIGNMENTS, ConverterSettings, load_settings
from docx_model import ConversionResult, DocxImportError, ImageData
from docx_package import DocxPackage
from markdown_converter import MarkdownConverter
from pipeline_logger import PipelineLogger

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)

INVALID_FILE_CHARS = re.compile(r'[\\/:*?"<>|\x00-\x1f]+')

PIPELINE_LOGGER: Optional[PipelineLogger] = None


def _log_user(message: str):
    print(message)
    if PIPELINE_LOGGER:
        PIPELINE_LOGGER.user(message)


def _log_error(message: str):
    print(message, file=sys.stderr)
    if PIPELINE_LOGGER:
        PIPELINE_LOGGER.error(message)


def sanitize_file_name(name: str) -> str:
    cleaned = INVALID_FILE_CHARS.sub("_", name or "").strip().strip(".")
    return cleaned or "document"


class FolderImageStore(ImageStore):
    """Writes images to {base_dir}/{folder}/, never overwriting an existing file."""

    def __init__(self, base_dir: str, folder: str = "attachments", use_relative_paths: bool = True,
                 create_folder: bool = True):
        super().__init__(folder, use_relative_paths, base_dir=os.path.abspath(base_dir))
        self.target_dir = os.path.join(self.base_dir, self.folder)
        self.create_folder = create_folder
        self.written = []

    def _exists(self, name: str) -> bool:
        return os.path.exists(os.path.join(self.target_dir, name))

    def save(self, name: str, image: ImageData) -> bool:
        if not os.path.isdir(self.target_dir):
            if not self.create_folder:
                logger.warning(f"Image folder {self.target_dir} does not exist; {name} not written")
                return False
            os.makedirs(self.target_dir, exist_ok=True)
        path = os.path.join(self.target_dir, name)
        with open(path, "wb") as fh:
            fh.write(image.data)
        self.written.append(path)
        logger.debug(f"Image written: {path}")
        return True


def convert_docx(source: Union[str, bytes, os.PathLike], settings: Optional[ConverterSettings] = None,
                 image_store: Optional[ImageStore] = None) -> ConversionResult:
    """Convert a .docx path (or its raw bytes) to Markdown. Raises DocxImportError when unreadable."""
    if isinstance(source, (bytes, bytearray)):
        package = DocxPackage.from_bytes(bytes(source))
    else:
        package = DocxPackage.from_path(source)
    return MarkdownConverter(settings, image_store).convert_package(package)


def default_output_path(input_path: str) -> str:
    stem = os.path.splitext(os.path.basename(input_path))[0]
    return os.path.join(os.path.dirname(os.path.abspath(input_path)), sanitize_file_name(stem) + ".md")


def write_markdown(markdown: str, output_path: str):
    out_dir = os.path.dirname(os.path.abspath(output_path))
    os.makedirs(out_dir, exist_ok=True)
    with open(output_path, "w", encoding="utf-8", newline="\n") as fh:
        fh.write(markdown)


def _settings_from_args(args) -> ConverterSettings:
    settings = load_settings(args.settings)
    return settings.with_overrides(
        image_folder=args.image_folder,
        use_relative_image_paths=False if args.absolute_image_paths else None,
        table_alignment=args.table_align,
        preserve_line_breaks=False if args.no_line_breaks else None,
        handle_numbering=False if args.no_numbering else None,
    )


def main(argv=None):
    start_ts = time.time()
    parser = argparse.ArgumentParser(description="DOCX -> Markdown converter (headings, lists, tables, images, OMML as LaTeX)")
    parser.add_argument("input", help="Input .docx path")
    parser.add_argument("--output", "-o", dest="output", default=None, help="Output .md path (default: next to the input)")
    parser.add_argument("--settings", default=None, help="Path to a docx2md_settings.json override")
    parser.add_argument("--image-folder", default=None, help="Image folder, relative to the output file")
    parser.add_argument("--absolute-image-paths", action="store_true", help="Link images by absolute path")
    parser.add_argument("--table-align", choices=TABLE_ALIGNMENTS, default=None, help="Column alignment for tables")
    parser.add_argument("--no-line-breaks", action="store_true", help="Render explicit line breaks as spaces")
    parser.add_argument("--no-numbering", action="store_true", help="Render every list item as a bullet")
    parser.add_argument("--log-root", default=None, help="Directory for the run logs")
    parser.add_argument("--debug", action="store_true", help="Also write a debug log")
    args = parser.parse_args(argv)

    input_path = os.path.abspath(args.input)
    if not os.path.exists(input_path):
        _log_error(f"Input file does not exist: {input_path}")
        return 2

    global PIPELINE_LOGGER
    PIPELINE_LOGGER = PipelineLogger(input_path, log_root=args.log_root, enable_debug=args.debug, console_echo=False)
    if args.debug:
        # console keeps warnings only; everything else goes to the debug log
        for h in logging.getLogger().handlers:
            h.setLevel(logging.WARNING)
        PIPELINE_LOGGER.capture_stdlib_logging()
        PIPELINE_LOGGER.describe_paths()

    try:
        settings = _settings_from_args(args)
        output_path = os.path.abspath(args.output) if args.output else default_output_path(input_path)
        PIPELINE_LOGGER.debug(f"[ARGS] settings={settings} output={output_path}")
        store = FolderImageStore(
            os.path.dirname(output_path),
            folder=settings.image_folder,
            use_relative_paths=settings.use_relative_image_paths,
            create_folder=settings.create_image_folder,
        )
        try:
            result = convert_docx(input_path, settings, store)
        except DocxImportError as e:
            _log_error(f"[ERROR] {e}")
            return 1

        write_markdown(result.markdown, output_path)
        PIPELINE_LOGGER.report_warnings(result.warnings)
        elapsed = time.time() - start_ts
        _log_user(f"[OK] Markdown saved -> {output_path}")
        _log_user(
            f"[REPORT][SUMMARY] images={len(store.written)} warnings={len(result.warnings)} elapsed={elapsed:.2f}s"
        )
        for w in result.warnings:
            print(f"  - {w}")
        return 0
    finally:
        PIPELINE_LOGGER.close()
        PIPELINE_LOGGER = None


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
