# -*- coding: utf-8 -*-
"""
In-memory view of a .docx container: {part name -> bytes}.

Everything is read up front so the parser never touches the file system.
"""
import io
import logging
import os
import zipfile
from typing import Dict, List, Optional, Union

from docx_model import DocxImportError

logger = logging.getLogger(__name__)


class DocxPackage(object):
    def __init__(self, parts: Dict[str, bytes], source: str = "<memory>"):
        self.parts = parts
        self.source = source

    @classmethod
    def from_parts(cls, parts: Dict[str, bytes], source: str = "<memory>") -> "DocxPackage":
        return cls(dict(parts), source)

    @classmethod
    def from_bytes(cls, data: bytes, source: str = "<memory>") -> "DocxPackage":
        return cls._read_zip(io.BytesIO(data), source)

    @classmethod
    def from_path(cls, path: Union[str, os.PathLike]) -> "DocxPackage":
        path = os.fspath(path)
        if not os.path.isfile(path):
            raise DocxImportError(f"DOCX not found: {path}")
        with open(path, "rb") as fh:
            return cls._read_zip(io.BytesIO(fh.read()), path)

    @classmethod
    def _read_zip(cls, stream, source: str) -> "DocxPackage":
        try:
            with zipfile.ZipFile(stream) as zf:
                parts = {info.filename: zf.read(info) for info in zf.infolist() if not info.is_dir()}
        except (zipfile.BadZipFile, zipfile.LargeZipFile, OSError) as e:
            raise DocxImportError(f"Not a valid DOCX container: {source} ({e})") from e
        logger.info(f"Loaded {len(parts)} part(s) from {source}")
        return cls(parts, source)

    def names(self) -> List[str]:
        return list(self.parts)

    def read(self, name: str) -> Optional[bytes]:
        return self.parts.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self.parts
