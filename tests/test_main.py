"""CLI-level tests for main.py."""

from __future__ import annotations

import csv
import json
from pathlib import Path
from unittest.mock import patch

import pytest
from dotenv import load_dotenv

import main


def _raw_work(work_id: str, year: int, is_oa: bool, authorships: list[dict], title: str = "A study") -> dict:
    return {
        "id": work_id,
        "title": title,
        "type": "article",
        "publication_year": year,
        "open_access": {"is_oa": is_oa},
        "authorships": authorships,
    }


def _authorship(name: str, *institutions: str) -> dict:
    return {"author": {"display_name": name}, "institutions": [{"display_name": i} for i in institutions]}


def _works_file(tmp_path: Path) -> Path:
    works = [
        _raw_work(f"W{i}", 2020, True, [_authorship("B. Lee", "Yale University Press")])
        for i in range(3)
    ]
    works.append(_raw_work("W3", 2021, False, [_authorship("B. Lee"), _authorship("C. Nobody")]))
    path = tmp_path / "works_clean.json"
    path.write_text(json.dumps(works), encoding="utf-8")
    return path


def _authority_file(tmp_path: Path, extra: str = "") -> Path:
    path = tmp_path / "affiliations_press.csv"
    path.write_text(
        "name,university press,url\nYale University Press,Yes,https://yalebooks.yale.edu\n" + extra,
        encoding="utf-8",
    )
    return path


def _rows(path: Path) -> list[dict]:
    with path.open(newline="", encoding="utf-8") as fh:
        return list(csv.DictReader(fh))


def test_analyze_writes_all_outputs(tmp_path: Path) -> None:
    out = tmp_path / "out"
    main.main([
        "analyze",
        "--works", str(_works_file(tmp_path)),
        "--authority", str(_authority_file(tmp_path)),
        "--output-dir", str(out),
    ])

    final = _rows(out / "affiliations_final.csv")
    assert len(final) == 5
    lee_2021 = [r for r in final if r["id"] == "W3" and r["au_display_name"] == "B. Lee"][0]
    assert lee_2021["institution_name"] == "Yale University Press"
    assert lee_2021["university_press"] == "True"

    review = _rows(out / "affiliations_imputed_na.csv")
    assert [r["au_display_name"] for r in review] == ["C. Nobody"]

    assert (out / "articles_per_year.csv").exists()
    assert (out / "authors_per_year.csv").exists()
    assert (out / "fig1_articles_authors_per_year.csv").exists()


def test_analyze_duplicate_authority_exits_without_output(tmp_path: Path) -> None:
    out = tmp_path / "out"
    authority = _authority_file(tmp_path, extra="Yale  University Press,No,\n")

    with pytest.raises(SystemExit) as excinfo:
        main.main([
            "analyze",
            "--works", str(_works_file(tmp_path)),
            "--authority", str(authority),
            "--output-dir", str(out),
            "--on-duplicate", "error",
        ])

    assert excinfo.value.code == 1
    assert not out.exists()


def test_analyze_duplicate_authority_first_policy(tmp_path: Path) -> None:
    out = tmp_path / "out"
    authority = _authority_file(tmp_path, extra="Yale  University Press,No,\n")
    main.main([
        "analyze",
        "--works", str(_works_file(tmp_path)),
        "--authority", str(authority),
        "--output-dir", str(out),
        "--on-duplicate", "first",
    ])
    final = _rows(out / "affiliations_final.csv")
    assert any(r["university_press"] == "True" for r in final)


def test_analyze_malformed_work_exits(tmp_path: Path) -> None:
    works = tmp_path / "works.json"
    works.write_text(json.dumps([{"id": "W1", "authorships": []}]), encoding="utf-8")
    with pytest.raises(SystemExit):
        main.main([
            "analyze",
            "--works", str(works),
            "--authority", str(_authority_file(tmp_path)),
            "--output-dir", str(tmp_path / "out"),
        ])


def test_fetch_saves_raw_and_filtered(tmp_path: Path) -> None:
    payload = [
        _raw_work("W1", 2020, True, [_authorship("A. Smith", "MIT")]),
        _raw_work("W2", 2020, True, [_authorship("A. Smith", "MIT")], title="Spanish Abstracts"),
        _raw_work("W3", 2020, True, []),
    ]
    raw, clean = tmp_path / "raw.json", tmp_path / "clean.json"

    with patch("main.fetch_works_payload", return_value=payload):
        main.main(["fetch", "--raw", str(raw), "--clean", str(clean)])

    assert len(json.loads(raw.read_text(encoding="utf-8"))) == 3
    assert [w["id"] for w in json.loads(clean.read_text(encoding="utf-8"))] == ["W1"]


def test_analyze_reads_settings_from_dotenv(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Settings in .env apply even though modules were imported before load_dotenv ran."""
    works = [
        _raw_work("W1", 2020, True, [_authorship("A. Smith", "MIT")]),
        _raw_work("W2", 2020, True, [_authorship("A. Smith", "MIT")]),
        _raw_work("W3", 2020, True, [_authorship("A. Smith", "MIT")]),
        _raw_work("W4", 2021, True, [_authorship("A. Smith", "Unknown U")]),
        _raw_work("W5", 2021, True, [_authorship("A. Smith")]),
    ]
    works_path = tmp_path / "works.json"
    works_path.write_text(json.dumps(works), encoding="utf-8")
    out = tmp_path / "from_env"
    env_file = tmp_path / ".env"
    env_file.write_text(f"STABLE_SHARE_THRESHOLD=0.7\nOUTPUT_DIR={out}\n", encoding="utf-8")

    # registered so teardown restores the environment load_dotenv writes into
    monkeypatch.setenv("STABLE_SHARE_THRESHOLD", "0.9")
    monkeypatch.setenv("OUTPUT_DIR", str(tmp_path / "default_out"))
    monkeypatch.setattr(main, "load_dotenv", lambda: load_dotenv(env_file, override=True))

    main.main(["analyze", "--works", str(works_path), "--authority", str(_authority_file(tmp_path))])

    final = _rows(out / "affiliations_final.csv")
    assert [r["affiliation_source"] for r in final] == [
        "observed", "observed", "observed", "observed", "imputed_stable_author",
    ]
    assert final[-1]["institution_name"] == "MIT"


def test_analyze_authority_missing_columns_exits(tmp_path: Path) -> None:
    authority = tmp_path / "auth.csv"
    authority.write_text("institution,flag\nMIT,No\n", encoding="utf-8")
    out = tmp_path / "out"

    with pytest.raises(SystemExit) as excinfo:
        main.main([
            "analyze",
            "--works", str(_works_file(tmp_path)),
            "--authority", str(authority),
            "--output-dir", str(out),
        ])

    assert excinfo.value.code == 1
    assert not out.exists()


@pytest.mark.parametrize("content", ['{"results": []}', "not json"])
def test_analyze_unreadable_works_file_exits(tmp_path: Path, content: str) -> None:
    works = tmp_path / "works.json"
    works.write_text(content, encoding="utf-8")

    with pytest.raises(SystemExit) as excinfo:
        main.main([
            "analyze",
            "--works", str(works),
            "--authority", str(_authority_file(tmp_path)),
            "--output-dir", str(tmp_path / "out"),
        ])

    assert excinfo.value.code == 1


def test_analyze_twice_writes_identical_files(tmp_path: Path) -> None:
    works, authority = _works_file(tmp_path), _authority_file(tmp_path)
    first, second = tmp_path / "run1", tmp_path / "run2"

    for out in (first, second):
        main.main(["analyze", "--works", str(works), "--authority", str(authority), "--output-dir", str(out)])

    names = sorted(p.name for p in first.iterdir())
    assert names == sorted(p.name for p in second.iterdir())
    assert len(names) == 5
    for name in names:
        assert (first / name).read_bytes() == (second / name).read_bytes(), name
