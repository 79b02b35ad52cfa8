"""Tests for the command-line entry point."""

from __future__ import annotations

import json

import pytest

import main


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _write_words(path, rows: list[str]) -> None:
    words = []
    for r, row in enumerate(rows):
        x = 10.0
        for t in row.split():
            w = 10.0 * len(t)
            words.append({"text": t, "bbox": {"x": x, "y": 10.0 + 40.0 * r, "w": w, "h": 20.0}})
            x += w + 10.0
    path.write_text(json.dumps({"words": words, "text": "\n".join(rows)}))


@pytest.fixture
def id_card(tmp_path):
    path = tmp_path / "page.json"
    _write_words(path, ["Name: John Doe", "Aadhaar: 234567890124"])
    return path


class TestMain:
    def test_prints_result(self, id_card, capsys):
        assert main.main([str(id_card)]) == 0
        out = json.loads(capsys.readouterr().out)
        assert out["classification"]["primary_type"] == "id_card_aadhaar"
        assert {e["type"] for e in out["entities"]} == {"NAME", "AADHAAR"}

    def test_keep_type(self, id_card, capsys):
        assert main.main([str(id_card), "--keep", "name"]) == 0
        out = json.loads(capsys.readouterr().out)
        masked = {e["type"]: e["masked"] for e in out["entities"]}
        assert masked == {"NAME": False, "AADHAAR": True}

    def test_keep_document_field(self, id_card, capsys):
        assert main.main([str(id_card), "--doc-type", "aadhaar", "--keep", "AADHAAR"]) == 0
        out = json.loads(capsys.readouterr().out)
        masked = {e["type"]: e["masked"] for e in out["entities"]}
        assert masked == {"NAME": True, "AADHAAR": False}

    def test_plain_word_list(self, tmp_path, capsys):
        path = tmp_path / "words.json"
        path.write_text(json.dumps([
            {"text": "Call", "bbox": {"x": 10, "y": 10, "w": 40, "h": 20}},
            {"text": "9876543210", "bbox": {"x": 60, "y": 10, "w": 100, "h": 20}},
        ]))
        assert main.main([str(path), "--page", "3"]) == 0
        out = json.loads(capsys.readouterr().out)
        assert out["page_index"] == 3
        assert [e["type"] for e in out["entities"]] == ["PHONE"]

    def test_missing_file(self, tmp_path):
        assert main.main([str(tmp_path / "nope.json")]) == 2

    def test_unknown_keep_type(self, id_card):
        assert main.main([str(id_card), "--keep", "SHOE_SIZE"]) == 2
