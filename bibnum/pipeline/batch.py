"""Batch processing: single images, scored ground-truth CSV files and directories.

- An image file is processed on its own.
- A ``.csv`` file lists one image per line followed by its expected numbers,
  separated by ``;``; image names are relative to the CSV's directory. The
  numbers read are scored against the ground truth.
- A directory has all its images processed in name order and the numbers found
  are written to ``out.csv`` in that directory, one row per number with the
  images it was read from.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import pandas as pd

from bibnum.config import DetectionParams
from bibnum.pipeline.process import TextDetector, print_progress_bar, process_image

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = (".jpg", ".png")
RESULT_FILE_NAME = "out.csv"


@dataclass
class Score:
    true_positives: int = 0
    false_positives: int = 0
    relevant: int = 0

    @property
    def precision(self) -> float:
        found = self.true_positives + self.false_positives
        return self.true_positives / found if found else 0.0

    @property
    def recall(self) -> float:
        return self.true_positives / self.relevant if self.relevant else 0.0

    @property
    def fscore(self) -> float:
        p, r = self.precision, self.recall
        return 2 * p * r / (p + r) if p + r else 0.0


def is_image_file(name: str) -> bool:
    return name.lower().endswith(IMAGE_EXTENSIONS)


def read_ground_truth(csv_path: str) -> List[Tuple[str, List[int]]]:
    """Parse a ``;``-separated ground truth file into (image path, numbers) rows.

    Doxygen:
    - @param csv_path: Path of the CSV file.
    - @return: Rows with the image path resolved against the CSV's directory.
    """
    base = os.path.dirname(csv_path)
    rows: List[Tuple[str, List[int]]] = []
    with open(csv_path, "r", encoding="utf-8") as f:
        for line in f:
            cells = [c.strip() for c in line.strip().split(";")]
            if not cells or not cells[0]:
                continue
            numbers = [int(c) for c in cells[1:] if c]
            rows.append((os.path.join(base, cells[0]), numbers))
    return rows


def _safe_process(
    image_path: str,
    detector: TextDetector,
    params: Optional[DetectionParams],
) -> List[int]:
    print(f"Processing file {image_path}")
    try:
        numbers = process_image(image_path, params, detector=detector)
    except (FileNotFoundError, RuntimeError, ValueError) as e:
        print(f"ERROR: Could not process image {image_path}: {e}")
        return []
    print(f"Read: [{' '.join(str(n) for n in numbers)}]")
    return numbers


def compare_numbers(found: List[int], expected: List[int]) -> pd.DataFrame:
    """Label every found and expected number as match, mismatch or missed."""
    records = [
        {"number": n, "status": "match" if n in expected else "mismatch"} for n in found
    ]
    records.extend({"number": n, "status": "missed"} for n in expected if n not in found)
    return pd.DataFrame(records, columns=["number", "status"])


def score_ground_truth(
    csv_path: str,
    detector: Optional[TextDetector] = None,
    params: Optional[DetectionParams] = None,
) -> Score:
    """Process every image listed in a ground-truth CSV and score the results.

    Doxygen:
    - @param csv_path: Ground truth CSV path.
    - @param detector: Detector to use; a tesseract-backed one if None.
    - @param params: Detection parameters (defaults if None).
    - @return: Accumulated `Score`.
    """
    detector = detector or TextDetector()
    score = Score()
    for image_path, expected in read_ground_truth(csv_path):
        found = _safe_process(image_path, detector, params)
        outcome = compare_numbers(found, expected)
        for row in outcome.itertuples(index=False):
            print(f"{row.status.capitalize()} {row.number}")
        counts = outcome["status"].value_counts()
        score.true_positives += int(counts.get("match", 0))
        score.false_positives += int(counts.get("mismatch", 0))
        score.relevant += len(expected)

    print(f"precision={score.true_positives}/{score.true_positives + score.false_positives}={score.precision:.2f}")
    print(f"recall={score.true_positives}/{score.relevant}={score.recall:.2f}")
    print(f"F-score={score.fscore:.2f}")
    return score


def group_by_number(found: Dict[str, List[int]]) -> pd.DataFrame:
    """Invert image → numbers into one row per number listing its images."""
    records = [(image, n) for image, numbers in found.items() for n in numbers]
    df = pd.DataFrame(records, columns=["image", "number"])
    if df.empty:
        return pd.DataFrame(columns=["number", "images"])
    grouped = df.groupby("number", sort=True)["image"].apply(lambda s: ",".join(sorted(s)))
    return grouped.reset_index().rename(columns={"image": "images"})


def process_directory(
    dir_path: str,
    detector: Optional[TextDetector] = None,
    params: Optional[DetectionParams] = None,
) -> str:
    """Process all images of a directory and write ``out.csv`` into it.

    Doxygen:
    - @param dir_path: Directory holding the images.
    - @param detector: Detector to use; a tesseract-backed one if None.
    - @param params: Detection parameters (defaults if None).
    - @return: Path of the written results file.
    """
    detector = detector or TextDetector()
    out_path = os.path.join(dir_path, RESULT_FILE_NAME)
    print(f"Processing directory {dir_path} into {out_path}")
    images = sorted(
        os.path.join(dir_path, name) for name in os.listdir(dir_path) if is_image_file(name)
    )
    found: Dict[str, List[int]] = {}
    for done, image_path in enumerate(images, start=1):
        found[image_path] = _safe_process(image_path, detector, params)
        print_progress_bar(done, len(images))
        print()
    print(f"Saving results to {out_path}")
    group_by_number(found).to_csv(out_path, index=False)
    return out_path


def process_path(
    path: str,
    detector: Optional[TextDetector] = None,
    params: Optional[DetectionParams] = None,
):
    """Dispatch on the kind of `path`: image, ground truth CSV or directory.

    Doxygen:
    - @return: Numbers for an image, a `Score` for a CSV, the results file path
      for a directory.
    - @throws FileNotFoundError: If `path` does not exist.
    - @throws ValueError: If `path` is a file of an unsupported type.
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"Not found: {path}")
    if os.path.isdir(path):
        return process_directory(path, detector, params)
    if is_image_file(path):
        return process_image(path, params, detector=detector)
    if path.lower().endswith(".csv"):
        return score_ground_truth(path, detector, params)
    raise ValueError(f"Unsupported input: {path}")
