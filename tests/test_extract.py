import json
from pathlib import Path

import pytest

from classgen import ClassBuilder, write_jar
from locscan import (
    ClassFormatError,
    CompiledModule,
    ConflictingEntryError,
    ExtractionConfig,
    LocEntry,
    LocRegistry,
    UnrecoverableKeyError,
    export_localizable,
    extract_module,
)


def _greeting_classes(second_message: str = "Hello") -> dict:
    first = ClassBuilder("com/example/A")
    first.constructor().localize("Greeting", "Hello").return_()
    second = ClassBuilder("com/example/B")
    second.method("show").localize("Greeting", second_message).return_()
    return {"com/example/A": first.build(), "com/example/B": second.build()}


def test_module_without_call_sites_yields_empty_table() -> None:
    plain = ClassBuilder("Plain")
    plain.method("run").ldc("not localized").pop().return_()
    module = CompiledModule.from_bytes("plain", [("Plain.class", plain.build())])

    result = extract_module(module)

    assert len(result.table) == 0
    assert result.log.matches == 0
    assert result.statistics.classes == 1


def test_same_text_in_two_types_gives_one_entry() -> None:
    module = CompiledModule.from_bytes("app", _greeting_classes().items())

    result = extract_module(module)

    assert dict(result.table) == {"Greeting": LocEntry("Greeting", "Hello", "A.<init>")}
    assert result.log.duplicates == 1


def test_changed_text_fails_citing_the_key() -> None:
    module = CompiledModule.from_bytes("app", _greeting_classes("Hi").items())

    with pytest.raises(ConflictingEntryError, match="Greeting"):
        extract_module(module)


def test_invalid_call_site_respects_tolerance_flag() -> None:
    builder = ClassBuilder("Form")
    code = builder.method("init", "(Ljava/lang/String;)V")
    code.localize("Ok", "fine")
    code.aload(1).ldc("Fallback").invokestatic("Loc", "localize").pop()
    code.return_()
    module = CompiledModule.from_bytes("form", [("Form.class", builder.build())])

    with pytest.raises(UnrecoverableKeyError, match="Form.init"):
        extract_module(module)

    result = extract_module(module, ExtractionConfig(ignore_invalid_functions=True))
    assert list(result.table) == ["Ok"]
    assert result.log.skipped == 1


def test_export_writes_localizable_file(tmp_path: Path) -> None:
    jar = write_jar(tmp_path / "MyApp.jar", _greeting_classes())
    module = CompiledModule.load(jar)

    output = export_localizable(module, tmp_path / "out")

    assert output == tmp_path / "out" / "MyApp_Localizable.json"
    payload = json.loads(output.read_text("utf-8"))
    assert payload == {"Greeting": {"message": "Hello", "description": "A.<init>"}}


def test_exported_catalog_feeds_the_runtime(tmp_path: Path) -> None:
    jar = write_jar(tmp_path / "MyApp.jar", _greeting_classes())
    module = CompiledModule.load(jar)
    exported = export_localizable(module, tmp_path)

    payload = json.loads(exported.read_text("utf-8"))
    payload["Greeting"]["message"] = "Hallo"
    registry = LocRegistry()
    registry.setup(module.identity, json.dumps(payload))

    assert registry.resolve("MyApp", "Greeting", "Hello") == "Hallo"


def test_load_directory_and_single_class(tmp_path: Path) -> None:
    classes = _greeting_classes()
    root = tmp_path / "classes"
    for name, data in classes.items():
        path = root / f"{name}.class"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    tree = CompiledModule.load(root)
    single = CompiledModule.load(root / "com/example/B.class", identity="custom")

    assert tree.identity == "classes"
    assert [c.name for c in tree] == ["com/example/A", "com/example/B"]
    assert single.identity == "custom"
    assert len(single) == 1


def test_jar_with_corrupt_class_is_rejected(tmp_path: Path) -> None:
    jar = write_jar(tmp_path / "Bad.jar", {"Broken": b"\x00" * 12})

    with pytest.raises(ClassFormatError, match="Broken.class"):
        CompiledModule.load(jar)


def test_undecodable_method_is_logged_not_fatal() -> None:
    builder = ClassBuilder("Mixed")
    builder.raw_method("garbage", b"\xfe")
    builder.method("fine").localize("Still", "here").return_()
    module = CompiledModule.from_bytes("mixed", [("Mixed.class", builder.build())])

    result = extract_module(module)

    assert list(result.table) == ["Still"]
    assert result.log.decode_failures == 1
    assert "Mixed.garbage" in result.log.render()


def test_export_keeps_unpaired_surrogate_in_fallback(tmp_path: Path) -> None:
    builder = ClassBuilder("Odd")
    builder.method("show").localize("Odd", "bad \ud800 text").return_()
    module = CompiledModule.from_bytes("odd", [("Odd.class", builder.build())])

    output = export_localizable(module, tmp_path)

    payload = json.loads(output.read_text("utf-8"))
    assert payload["Odd"]["message"] == "bad \ud800 text"


def test_current_directory_takes_its_resolved_name(tmp_path: Path, monkeypatch) -> None:
    root = tmp_path / "classes"
    root.mkdir()
    (root / "A.class").write_bytes(_greeting_classes()["com/example/A"])
    monkeypatch.chdir(root)

    module = CompiledModule.load(Path("."))

    assert module.identity == "classes"
    assert len(module) == 1
