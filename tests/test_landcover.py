import pytest

from conftest import make_record
from pipelines.landcover import (
    extract_label,
    is_usable_summary,
    label_for_code,
    normalize_label,
    summarize_land_cover,
)
from pipelines.model import LandCoverEntry


@pytest.mark.parametrize(
    ("code", "label"),
    [
        (11, "Water"),
        (21, "Urban/Built-up"),
        (23, "Urban/Built-up"),
        (31, "Barren"),
        (42, "Forest"),
        (52, "Shrubland"),
        (71, "Grassland"),
        (82, "Cropland"),
        (95, "Wetland"),
        (999, "Unknown"),
        (12, "Unknown"),
    ],
)
def test_code_table(code, label):
    assert label_for_code(code) == label


@pytest.mark.parametrize(
    ("text", "label"),
    [
        ("High Density RESIDENTIAL", "Urban/Built-up"),
        ("irrigated farmland", "Cropland"),
        ("Mixed woodland", "Forest"),
        ("Open water", "Water"),
        ("tallgrass prairie", "Grassland"),
        ("Scrub", "Shrubland"),
        ("Salt marsh", "Wetland"),
        ("bare rock", "Barren"),
        ("   ", "Unknown"),
        ("Glacier", "Glacier"),
    ],
)
def test_keyword_normalization(text, label):
    assert normalize_label(text) == label


def test_extract_label_prefers_string_then_code_then_nested():
    assert extract_label({"Label": "Evergreen forest", "code": 11}) == "Forest"
    assert extract_label({"lc_code": 23}) == "Urban/Built-up"
    assert extract_label({"landcover": {"class": "Lake shore"}}) == "Water"
    assert extract_label({"landcover": {"code": 999}}) == "Unknown"
    assert extract_label({"unrelated": 1}) == "Unknown"
    assert extract_label(None) == "Unknown"


def test_numeric_value_under_label_alias_goes_to_code_pass():
    # "landcover" is both a label and a code alias; a number there is a code
    assert extract_label({"landcover": 41, "name": "Plot 7"}) == "Forest"
    assert extract_label({"landcover": 999, "name": "Plot 7"}) == "Unknown"


def test_summary_ranks_and_truncates():
    labels = ["forest"] * 4 + ["water"] * 3 + ["crop"] * 2 + ["grass", "shrub", "marsh"]
    recs = [make_record("globe_landcovers.json", raw={"data": {"class": text}}) for text in labels]

    summary = summarize_land_cover(recs)

    assert summary[:3] == [
        LandCoverEntry(label="Forest", count=4),
        LandCoverEntry(label="Water", count=3),
        LandCoverEntry(label="Cropland", count=2),
    ]
    assert len(summary) == 5
    assert [entry.label for entry in summary[3:]] == ["Grassland", "Shrubland"]


def test_summary_usability():
    assert not is_usable_summary([])
    assert not is_usable_summary([LandCoverEntry(label="Unknown", count=3)])
    assert is_usable_summary(
        [LandCoverEntry(label="Forest", count=3), LandCoverEntry(label="Unknown", count=1)]
    )
