"""Tests for main module."""

from image_optimizer import main as main_module


def test_main_starts_uvicorn_with_settings(monkeypatch) -> None:
    calls: list[tuple[str, dict[str, object]]] = []
    monkeypatch.setenv("PORT", "9001")
    monkeypatch.setattr(
        main_module.uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs))
    )

    main_module.main()

    assert calls == [
        (
            "image_optimizer.api.asgi:app",
            {"host": "0.0.0.0", "port": 9001, "log_level": "info"},  # noqa: S104
        )
    ]
