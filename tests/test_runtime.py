import threading
from pathlib import Path

from locscan.entries import LocEntry, LocTable
from locscan.runtime import LocRegistry, missing_marker


def _registry() -> LocRegistry:
    registry = LocRegistry()
    registry.register(
        "app",
        LocTable(
            [
                LocEntry("Greeting", "Hallo"),
                LocEntry("Untranslated", ""),
                LocEntry("Absent", None),
            ]
        ),
    )
    return registry


def test_unregistered_module_returns_marker() -> None:
    registry = _registry()

    assert registry.resolve("other", "Greeting", "Hello") == "#Greeting"
    assert missing_marker("Greeting") == "#Greeting"


def test_stored_message_wins_over_fallback() -> None:
    assert _registry().resolve("app", "Greeting", "Hello") == "Hallo"


def test_missing_key_uses_fallback_or_marker() -> None:
    registry = _registry()

    assert registry.resolve("app", "Farewell", "Bye") == "Bye"
    assert registry.resolve("app", "Farewell", "") == "#Farewell"
    assert registry.resolve("app", "Farewell") == "#Farewell"


def test_empty_stored_message_is_treated_as_missing() -> None:
    registry = _registry()

    assert registry.resolve("app", "Untranslated", "Source text") == "Source text"
    assert registry.resolve("app", "Absent", "") == "#Absent"


def test_reregistering_replaces_the_whole_table() -> None:
    registry = _registry()
    registry.register("app", LocTable([LocEntry("Farewell", "Tschüss")]))

    assert registry.resolve("app", "Farewell", "Bye") == "Tschüss"
    assert registry.resolve("app", "Greeting", "Hello") == "Hello"


def test_setup_helpers() -> None:
    registry = LocRegistry()
    registry.setup("app", '{"Greeting": {"message": "Salut", "description": "A.run"}}')
    registry.setup_with_fallbacks("tool")

    assert registry.is_registered("tool")
    assert registry.resolve("app", "Greeting", "Hello") == "Salut"
    assert registry.resolve("tool", "Greeting", "Hello") == "Hello"


def test_load_from_file(tmp_path: Path) -> None:
    path = tmp_path / "de_DE.json"
    LocTable([LocEntry("MsgBoxText", "Eine Box! Schön!")]).dump(path)
    registry = LocRegistry()
    registry.load("app", path)

    assert registry.table("app")["MsgBoxText"].message == "Eine Box! Schön!"


def test_bound_localizer() -> None:
    localize = _registry().bind("app")

    assert localize.localize("Greeting", "Hello") == "Hallo"
    assert localize("Missing", "Fallback") == "Fallback"


def test_concurrent_readers_during_registration() -> None:
    registry = LocRegistry()
    registry.register("app", LocTable([LocEntry("K", "v0")]))
    seen = set()
    errors = []
    stop = threading.Event()

    def reader() -> None:
        try:
            while not stop.is_set():
                seen.add(registry.resolve("app", "K", "fallback"))
        except Exception as exc:  # pragma: no cover - surfaced by the assertion below
            errors.append(exc)

    threads = [threading.Thread(target=reader) for _ in range(4)]
    for thread in threads:
        thread.start()
    for version in range(1, 50):
        registry.register("app", LocTable([LocEntry("K", f"v{version}")]))
    stop.set()
    for thread in threads:
        thread.join()

    assert not errors
    assert seen <= {f"v{version}" for version in range(50)}
    assert registry.resolve("app", "K") == "v49"
