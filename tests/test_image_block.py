from __future__ import annotations

from builders.image_block import InMemoryImageStore, render_image
from docx_model import DocxElement, ElementKind, ElementProperties, ImageData, Relationship
from docx_to_md import FolderImageStore
from tests.helpers import PNG_BYTES, make_context


def _image(name: str = "image1.png") -> ImageData:
    return ImageData(data=PNG_BYTES, content_type="image/png", file_name=name, extension="png")


def test_in_memory_store_names_are_unique():
    store = InMemoryImageStore()
    assert store.materialize(_image(), "first") == "![first](attachments/image1.png)"
    assert store.materialize(_image()) == "![](attachments/image1_1.png)"
    assert store.materialize(_image()) == "![](attachments/image1_2.png)"
    assert sorted(store.files) == ["image1.png", "image1_1.png", "image1_2.png"]


def test_paths_with_spaces_are_wrapped():
    store = InMemoryImageStore(folder="my images")
    assert store.materialize(_image()) == "![](<my images/image1.png>)"


def test_absolute_links(tmp_path):
    store = InMemoryImageStore(use_relative_paths=False, base_dir=str(tmp_path))
    expected = (tmp_path / "attachments" / "image1.png").as_posix()
    assert store.materialize(_image()) == f"![]({expected})"


def test_render_image_resolves_relationship_to_media():
    rels = {"rId5": Relationship(id="rId5", target="media/image1.png")}
    ctx = make_context(relationships=rels, images={"media/image1.png": _image()})
    element = DocxElement(kind=ElementKind.IMAGE, props=ElementProperties(image_id="rId5", image_alt="Diagram"))
    assert render_image(element, ctx) == "![Diagram](attachments/image1.png)"
    assert ctx.image_store.files["image1.png"] == PNG_BYTES


def test_render_image_degrades_silently():
    rels = {"rId5": Relationship(id="rId5", target="media/missing.png")}
    ctx = make_context(relationships=rels)
    for rid in ("rId5", "rId6", None):
        element = DocxElement(kind=ElementKind.IMAGE, props=ElementProperties(image_id=rid))
        assert render_image(element, ctx) == "[Image]"
    assert ctx.warnings == []


def test_folder_store_writes_and_skips_existing(tmp_path):
    (tmp_path / "attachments").mkdir()
    (tmp_path / "attachments" / "image1.png").write_bytes(b"old")
    store = FolderImageStore(str(tmp_path))
    assert store.materialize(_image()) == "![](attachments/image1_1.png)"
    assert (tmp_path / "attachments" / "image1_1.png").read_bytes() == PNG_BYTES
    assert (tmp_path / "attachments" / "image1.png").read_bytes() == b"old"


def test_folder_store_respects_create_folder(tmp_path):
    FolderImageStore(str(tmp_path), folder="imgs").materialize(_image())
    assert (tmp_path / "imgs" / "image1.png").exists()
    assert FolderImageStore(str(tmp_path), folder="nope", create_folder=False).materialize(_image()) is None
    assert not (tmp_path / "nope").exists()


def test_unwritten_image_becomes_placeholder_with_warning(tmp_path):
    rels = {"rId5": Relationship(id="rId5", target="media/image1.png")}
    store = FolderImageStore(str(tmp_path), folder="nope", create_folder=False)
    ctx = make_context(relationships=rels, images={"media/image1.png": _image()}, store=store)
    element = DocxElement(kind=ElementKind.IMAGE, props=ElementProperties(image_id="rId5"))
    assert render_image(element, ctx) == "[Image]"
    assert ctx.warnings == ["Image not saved: image1.png"]
    assert store.written == []
