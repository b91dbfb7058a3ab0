"""Image references: relationship id -> media part -> Markdown link through an ImageStore."""
from __future__ import annotations

import logging
import os
import posixpath
from typing import Dict, Optional, Set

from docx_model import ConversionContext, DocxElement, ImageData
from docx_structure_parser import media_key_for_target

logger = logging.getLogger(__name__)

IMAGE_PLACEHOLDER = "[Image]"


class ImageStore(object):
    """
    Picks a unique file name per image and builds the link text.
    Subclasses decide where the bytes go (`save`).
    """

    def __init__(self, folder: str = "attachments", use_relative_paths: bool = True,
                 base_dir: Optional[str] = None):
        self.folder = (folder or "").strip().strip("/\\")
        self.use_relative_paths = use_relative_paths
        self.base_dir = base_dir or os.getcwd()
        self._used: Set[str] = set()

    def _exists(self, name: str) -> bool:
        return False

    def unique_name(self, file_name: str) -> str:
        stem, ext = os.path.splitext(os.path.basename(file_name or "") or "image.png")
        candidate = f"{stem}{ext}"
        n = 1
        while candidate in self._used or self._exists(candidate):
            candidate = f"{stem}_{n}{ext}"
            n += 1
        self._used.add(candidate)
        return candidate

    def link_for(self, name: str) -> str:
        if self.use_relative_paths:
            path = posixpath.join(self.folder, name) if self.folder else name
        else:
            path = os.path.abspath(os.path.join(self.base_dir, self.folder, name)).replace(os.sep, "/")
        if " " in path:
            path = f"<{path}>"
        return path

    def save(self, name: str, image: ImageData) -> bool:
        """Store the bytes under `name`; False when they could not be written."""
        raise NotImplementedError

    def materialize(self, image: ImageData, alt: str = "") -> Optional[str]:
        """Markdown image link, or None when the store did not keep the image."""
        name = self.unique_name(image.file_name)
        if not self.save(name, image):
            return None
        alt = " ".join((alt or "").split()).replace("]", "\\]")
        return f"![{alt}]({self.link_for(name)})"


class InMemoryImageStore(ImageStore):
    def __init__(self, folder: str = "attachments", use_relative_paths: bool = True,
                 base_dir: Optional[str] = None):
        super().__init__(folder, use_relative_paths, base_dir)
        self.files: Dict[str, bytes] = {}

    def save(self, name: str, image: ImageData) -> bool:
        self.files[name] = image.data
        return True


def resolve_image(element: DocxElement, ctx: ConversionContext) -> Optional[ImageData]:
    rid = element.props.image_id
    rel = ctx.relationships.get(rid) if rid else None
    if rel is None or rel.is_external:
        return None
    return ctx.images.get(media_key_for_target(rel.target))


def render_image(element: DocxElement, ctx: ConversionContext) -> str:
    image = resolve_image(element, ctx)
    if image is None:
        logger.debug(f"Unresolved image reference {element.props.image_id!r}")
        return IMAGE_PLACEHOLDER
    link = ctx.image_store.materialize(image, element.props.image_alt)
    if link is None:
        ctx.warn(f"Image not saved: {image.file_name}")
        return IMAGE_PLACEHOLDER
    return link
