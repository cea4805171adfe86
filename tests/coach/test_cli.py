"""Tests for the formcoach command line."""

import logging

from coach_service import cli
from shared.utils import LOG_DATE_FORMAT, LOG_FORMAT


def test_parse_arguments():
    args = cli.parse_arguments(["analyze", "photo.jpg", "--exercise", "plank", "--json"])
    assert args.image == "photo.jpg"
    assert args.exercise == "plank"
    assert args.json


def test_logging_uses_project_format(monkeypatch):
    captured = {}
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: captured.update(kwargs))
    monkeypatch.setattr(cli, "cmd_serve", lambda args: 0)

    assert cli.main(["-v", "serve"]) == 0
    assert captured["format"] == LOG_FORMAT
    assert captured["datefmt"] == LOG_DATE_FORMAT
    assert captured["level"] == logging.DEBUG
