from __future__ import annotations

import json
import sys


def test_cli_classifies_directory_and_writes_manifest(tmp_path, monkeypatch, capsys, face_image, back_image):
    import run

    in_dir = tmp_path / "in"
    (in_dir / "tops").mkdir(parents=True)
    face_image.save(in_dir / "tops" / "front.png")
    back_image.save(in_dir / "tops" / "back.jpg")
    (in_dir / "notes.txt").write_text("not an image", encoding="utf-8")
    out_dir = tmp_path / "out"

    monkeypatch.setattr(sys, "argv", ["run.py", "--input", str(in_dir), "--output", str(out_dir)])
    assert run.main() == 0

    lines = (out_dir / "manifest.jsonl").read_text(encoding="utf-8").splitlines()
    records = {r["image_id"]: r for r in map(json.loads, lines)}
    assert set(records) == {"tops__back", "tops__front"}
    assert records["tops__front"]["orientation"] == "front"
    assert records["tops__front"]["has_person"] is True
    assert records["tops__back"]["orientation"] == "back"
    assert not (out_dir / "tryon.json").exists()

    out = capsys.readouterr().out
    assert "- total: 2" in out
    assert "front=1 back=1 unknown=0" in out


def test_cli_empty_input(tmp_path, monkeypatch, capsys):
    import run

    monkeypatch.setattr(sys, "argv", ["run.py", "--input", str(tmp_path), "--output", str(tmp_path / "out")])
    assert run.main() == 0
    assert "No images found" in capsys.readouterr().out


def test_cli_records_unreadable_image_as_unknown(tmp_path, monkeypatch, face_image):
    import run

    in_dir = tmp_path / "in"
    in_dir.mkdir()
    face_image.save(in_dir / "a.png")
    (in_dir / "broken.jpg").write_bytes(b"not really a jpeg")
    out_dir = tmp_path / "out"

    monkeypatch.setattr(sys, "argv", ["run.py", "--input", str(in_dir), "--output", str(out_dir)])
    assert run.main() == 0

    lines = (out_dir / "manifest.jsonl").read_text(encoding="utf-8").splitlines()
    records = {r["image_id"]: r for r in map(json.loads, lines)}
    assert records["a"]["orientation"] == "front"
    assert records["broken"] == {
        "image_id": "broken",
        "source_image": str(in_dir / "broken.jpg"),
        "has_person": False,
        "orientation": "unknown",
        "score": 0.0,
    }
