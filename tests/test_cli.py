import json

import pytest

from tripsequence.cli import build_parser, main


def _write(tmp_path, name: str, payload) -> str:
    path = tmp_path / name
    path.write_text(json.dumps(payload), encoding="utf-8")
    return str(path)


BOWTIE = [
    {"id": "a", "name": "Hotel", "coordinate": {"lat": 0, "lng": 0}},
    {"id": "c", "name": "Museum", "coordinate": {"lat": 1, "lng": 1}},
    {"id": "b", "name": "Market", "coordinate": {"lat": 0, "lng": 1}},
    {"id": "d", "name": "Park", "coordinate": {"lat": 1, "lng": 0}},
]


def test_optimize_json_output(tmp_path, capsys):
    stops = _write(tmp_path, "stops.json", {"stops": BOWTIE})

    assert main(["optimize", "--stops", stops, "--json"]) == 0

    data = json.loads(capsys.readouterr().out)
    assert data["original_route"]["order"] == ["a", "c", "b", "d"]
    assert sorted(data["optimized_route"]["order"]) == ["a", "b", "c", "d"]
    assert data["optimized_route"]["total_distance_km"] < data["original_route"]["total_distance_km"]


def test_optimize_text_output_uses_the_requested_unit(tmp_path, capsys):
    stops = _write(tmp_path, "stops.json", BOWTIE)

    assert main(["optimize", "--stops", stops, "--unit", "mi"]) == 0

    out = capsys.readouterr().out
    assert out.startswith("Original:")
    assert " mi " in out
    assert "1. Hotel" in out
    assert "Saved " in out


def test_advise_json_output(tmp_path, capsys):
    stops = _write(tmp_path, "stops.json", BOWTIE)

    assert main(["advise", "--stops", stops, "--json"]) == 0

    data = json.loads(capsys.readouterr().out)
    assert data["should_optimize"] is True
    assert data["estimate"]["is_estimate"] is True


def test_clusters_json_output(tmp_path, capsys):
    points = [
        {"id": f"p{i}", "coordinate": {"lat": 48.85 + (i // 5) * 0.002, "lng": 2.34 + (i % 5) * 0.003}}
        for i in range(25)
    ]
    path = _write(tmp_path, "points.json", {"points": points})

    assert main(["clusters", "--points", path, "--zoom", "0", "--json"]) == 0

    data = json.loads(capsys.readouterr().out)
    assert data["clustering_enabled"] is True
    assert sum(f["count"] for f in data["features"]) == 25


def test_invalid_input_exits_with_code_2(tmp_path, capsys):
    bad = _write(tmp_path, "bad.json", [{"id": "x", "coordinate": {"lat": 120, "lng": 0}}])
    not_a_list = _write(tmp_path, "obj.json", {"something": 1})

    assert main(["optimize", "--stops", bad]) == 2
    assert capsys.readouterr().err.startswith("error:")

    assert main(["advise", "--stops", not_a_list]) == 2
    assert "expected a JSON list" in capsys.readouterr().err

    assert main(["optimize", "--stops", str(tmp_path / "missing.json")]) == 2

    assert main(["optimize", "--stops", _write(tmp_path, "ok.json", BOWTIE), "--start-lat", "1"]) == 2
    assert "--start-lat and --start-lng" in capsys.readouterr().err


def test_parser_requires_a_subcommand():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_optimize_prints_a_directions_link_per_leg(tmp_path, capsys):
    stops = _write(tmp_path, "stops.json", BOWTIE)

    assert main(["optimize", "--stops", stops, "--directions", "google"]) == 0
    out = capsys.readouterr().out
    assert out.count("https://www.google.com/maps/dir/?") == 3
    assert "Leg 3: " in out

    assert main(["optimize", "--stops", stops, "--directions", "apple", "--json"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert len(data["directions"]) == 3
    assert all(url.startswith("http://maps.apple.com/?") for url in data["directions"])


def test_unknown_log_level_exits_with_code_2(tmp_path, capsys):
    stops = _write(tmp_path, "stops.json", BOWTIE)

    assert main(["--log-level", "chatty", "advise", "--stops", stops]) == 2
    assert "Unknown log level" in capsys.readouterr().err
