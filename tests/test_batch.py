import os

import cv2
import numpy as np
import pandas as pd
import pytest

from bibnum.pipeline import TextDetector, batch
from bibnum.pipeline.batch import (
    RESULT_FILE_NAME,
    Score,
    compare_numbers,
    group_by_number,
    is_image_file,
    process_directory,
    process_path,
    read_ground_truth,
    score_ground_truth,
)


def test_score_metrics():
    score = Score(true_positives=3, false_positives=1, relevant=6)
    assert score.precision == 0.75
    assert score.recall == 0.5
    assert score.fscore == pytest.approx(0.6)


def test_empty_score_is_zero():
    score = Score()
    assert (score.precision, score.recall, score.fscore) == (0.0, 0.0, 0.0)


def test_is_image_file():
    assert is_image_file("a.JPG")
    assert is_image_file("b.png")
    assert not is_image_file("c.csv")


def test_read_ground_truth_resolves_paths(tmp_path):
    csv_path = tmp_path / "truth.csv"
    csv_path.write_text("img1.jpg;12;345\n\nimg2.png;\nimg3.jpg;7;\n", encoding="utf-8")
    rows = read_ground_truth(str(csv_path))
    assert rows == [
        (os.path.join(str(tmp_path), "img1.jpg"), [12, 345]),
        (os.path.join(str(tmp_path), "img2.png"), []),
        (os.path.join(str(tmp_path), "img3.jpg"), [7]),
    ]


def test_compare_numbers_labels_every_number():
    outcome = compare_numbers([12, 99], [12, 345])
    assert outcome.to_dict("records") == [
        {"number": 12, "status": "match"},
        {"number": 99, "status": "mismatch"},
        {"number": 345, "status": "missed"},
    ]


def test_score_ground_truth(tmp_path, monkeypatch):
    csv_path = tmp_path / "truth.csv"
    csv_path.write_text("a.jpg;12;345\nb.jpg;7\n", encoding="utf-8")
    found = {"a.jpg": [12, 99], "b.jpg": [7]}

    def fake_process_image(image_path, params=None, detector=None, debug_dir=None):
        return found[os.path.basename(image_path)]

    monkeypatch.setattr(batch, "process_image", fake_process_image)
    score = score_ground_truth(str(csv_path), detector=TextDetector(recognizer=lambda patch: ""))
    assert (score.true_positives, score.false_positives, score.relevant) == (2, 1, 3)


def test_score_ground_truth_counts_unreadable_images_as_missed(tmp_path, capsys):
    csv_path = tmp_path / "truth.csv"
    csv_path.write_text("missing.jpg;12\n", encoding="utf-8")
    score = score_ground_truth(str(csv_path), detector=TextDetector(recognizer=lambda patch: ""))
    assert (score.true_positives, score.false_positives, score.relevant) == (0, 0, 1)
    out = capsys.readouterr().out
    assert "ERROR" in out
    assert "Missed 12" in out


def test_group_by_number():
    grouped = group_by_number({"a.jpg": [12, 7], "b.jpg": [12], "c.jpg": []})
    assert grouped.to_dict("records") == [
        {"number": 7, "images": "a.jpg"},
        {"number": 12, "images": "a.jpg,b.jpg"},
    ]


def test_group_by_number_empty():
    grouped = group_by_number({"a.jpg": []})
    assert list(grouped.columns) == ["number", "images"]
    assert grouped.empty


def test_process_directory_writes_results(tmp_path):
    blank = np.full((40, 40, 3), 255, dtype=np.uint8)
    cv2.imwrite(str(tmp_path / "one.png"), blank)
    cv2.imwrite(str(tmp_path / "two.jpg"), blank)
    (tmp_path / "notes.txt").write_text("ignored", encoding="utf-8")

    out_path = process_directory(str(tmp_path), detector=TextDetector(recognizer=lambda patch: "1"))
    assert out_path == os.path.join(str(tmp_path), RESULT_FILE_NAME)
    written = pd.read_csv(out_path)
    assert list(written.columns) == ["number", "images"]
    assert written.empty


def test_process_directory_groups_found_numbers(tmp_path, monkeypatch):
    for name in ("a.png", "b.png"):
        cv2.imwrite(str(tmp_path / name), np.full((10, 10, 3), 255, dtype=np.uint8))

    def fake_process_image(image_path, params=None, detector=None, debug_dir=None):
        return [5, 12] if image_path.endswith("a.png") else [12]

    monkeypatch.setattr(batch, "process_image", fake_process_image)
    out_path = process_path(str(tmp_path), detector=TextDetector(recognizer=lambda patch: ""))
    written = pd.read_csv(out_path)
    assert written["number"].tolist() == [5, 12]
    images = written["images"].tolist()
    assert images[0] == os.path.join(str(tmp_path), "a.png")
    assert images[1] == ",".join(os.path.join(str(tmp_path), n) for n in ("a.png", "b.png"))


def test_process_path_rejects_unknown_input(tmp_path):
    with pytest.raises(FileNotFoundError):
        process_path(str(tmp_path / "missing.png"))
    other = tmp_path / "notes.txt"
    other.write_text("x", encoding="utf-8")
    with pytest.raises(ValueError):
        process_path(str(other))
