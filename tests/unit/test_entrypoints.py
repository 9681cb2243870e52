'''
Unit tests for the two ways of starting the server.
'''

from __future__ import annotations

import runpy
import warnings
from pathlib import Path
from typing import Any, Dict

import pytest
import uvicorn

from finn_registry.core import get_settings


ROOT_SCRIPT = Path(__file__).resolve().parents[2] / 'main.py'


def _run(monkeypatch: pytest.MonkeyPatch, launcher) -> Dict[str, Any]:
    calls = []
    monkeypatch.setattr(uvicorn, 'run', lambda app, **kwargs: calls.append((app, kwargs)))

    with warnings.catch_warnings():
        # Re-running an imported module as __main__ warns
        warnings.simplefilter('ignore', RuntimeWarning)
        launcher()

    assert len(calls) == 1
    app, kwargs = calls[0]
    assert app == 'finn_registry.main:app'
    return kwargs


def _run_script(monkeypatch: pytest.MonkeyPatch) -> Dict[str, Any]:
    return _run(monkeypatch, lambda: runpy.run_path(str(ROOT_SCRIPT), run_name='__main__'))


def _run_module(monkeypatch: pytest.MonkeyPatch) -> Dict[str, Any]:
    return _run(monkeypatch, lambda: runpy.run_module('finn_registry.main', run_name='__main__'))


class TestEntryPoints:
    '''
    Test that the root script and ``python -m`` start uvicorn identically.
    '''

    def test_workers_honoured(self, monkeypatch: pytest.MonkeyPatch) -> None:
        server = get_settings().server
        monkeypatch.setattr(server, 'workers', 4)
        monkeypatch.setattr(server, 'reload', False)

        script = _run_script(monkeypatch)
        module = _run_module(monkeypatch)

        assert script['workers'] == 4
        assert script == module

    def test_reload_runs_single_worker(self, monkeypatch: pytest.MonkeyPatch) -> None:
        server = get_settings().server
        monkeypatch.setattr(server, 'workers', 4)
        monkeypatch.setattr(server, 'reload', True)

        script = _run_script(monkeypatch)
        module = _run_module(monkeypatch)

        assert script['workers'] == 1
        assert script['reload'] is True
        assert script == module
