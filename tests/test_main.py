import cv2
import numpy as np

from main import _cli


def test_cli_rejects_invalid_parameters(capsys):
    assert _cli(["anything.png", "--max-stroke-length", "-1"]) == 2
    assert "Invalid parameters" in capsys.readouterr().out


def test_cli_reports_missing_input(tmp_path, capsys):
    assert _cli([str(tmp_path / "missing.png")]) == 1
    assert "ERROR" in capsys.readouterr().out


def test_cli_processes_directory(tmp_path):
    cv2.imwrite(str(tmp_path / "blank.png"), np.full((30, 30, 3), 255, dtype=np.uint8))
    assert _cli([str(tmp_path), "--light-on-dark"]) == 0
    assert (tmp_path / "out.csv").is_file()


def test_cli_reads_single_image(tmp_path, capsys):
    path = tmp_path / "blank.png"
    cv2.imwrite(str(path), np.full((30, 30, 3), 255, dtype=np.uint8))
    assert _cli([str(path), "--debug-dir", str(tmp_path / "debug")]) == 0
    assert "Read: []" in capsys.readouterr().out
    assert (tmp_path / "debug" / "SWT.png").is_file()
