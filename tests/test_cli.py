from __future__ import annotations

import csv
import importlib
import json
from pathlib import Path
from typing import Any

import pytest
from typer.testing import CliRunner

import alt_text_enricher.cli as cli_module
import alt_text_enricher.config as config_module
from alt_text_enricher.providers import generation, source

CDN = "https://cdn.shopify.com/s/files/1/0001"


@pytest.fixture()
def cli(monkeypatch):
    for name in ("SHOPIFY_SHOP_DOMAIN", "SHOPIFY_API_KEY", "OPENAI_API_KEY"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("ATE_CHUNK_DELAY_MS", "0")

    def forbidden_post(*args: Any, **kwargs: Any) -> None:
        raise AssertionError("no HTTP request expected")

    monkeypatch.setattr(source.requests, "post", forbidden_post)
    monkeypatch.setattr(generation.requests, "post", forbidden_post)
    importlib.reload(config_module)
    return importlib.reload(cli_module)


def _export(write_export) -> Path:
    return write_export(
        [
            {"ID": "1", "File Name": "shoe.jpg", "Alt Text": ""},
            {"ID": "2", "File Name": "boot.jpg_product", "Alt Text": "Brown leather boot"},
            {"ID": "3", "File Name": "sandal.jpg", "Alt Text": ""},
        ]
    )


def test_corrupt_cache_aborts_before_any_request(cli, tmp_path: Path, write_export) -> None:
    cache = tmp_path / "cache.json"
    cache.write_text("{\"shoe.jpg\": ", encoding="utf-8")
    output = tmp_path / "out.csv"

    result = CliRunner().invoke(
        cli.app,
        ["run", str(_export(write_export)), "--cache-path", str(cache), "--output", str(output)],
    )

    assert result.exit_code == 1
    assert "not valid JSON" in result.output
    assert not output.exists()


def test_run_with_cached_index_and_mock_generation(cli, tmp_path: Path, write_export) -> None:
    cache = tmp_path / "cache.json"
    cache.write_text(
        json.dumps({"shoe.jpg": f"{CDN}/shoe.jpg?v=1", "boot.jpg": f"{CDN}/boot.jpg"}),
        encoding="utf-8",
    )
    output = tmp_path / "out.csv"

    result = CliRunner().invoke(
        cli.app,
        [
            "run",
            str(_export(write_export)),
            "--cache-path",
            str(cache),
            "--output",
            str(output),
            "--batch-size",
            "2",
            "--mock-generation",
        ],
    )

    assert result.exit_code == 0, result.output
    assert "in 2 batch(es)" in result.output
    with output.open(encoding="utf-8", newline="") as handle:
        records = list(csv.DictReader(handle))
    assert [record["Alt Text"] for record in records] == ["Image of shoe", "Brown leather boot", ""]
    assert "resolved_url" not in records[0]


def test_run_resume_appends_remaining_rows(cli, tmp_path: Path, write_export) -> None:
    cache = tmp_path / "cache.json"
    cache.write_text(json.dumps({"shoe.jpg": f"{CDN}/shoe.jpg"}), encoding="utf-8")
    output = tmp_path / "out.csv"
    args = ["run", str(_export(write_export)), "--cache-path", str(cache), "--output", str(output)]

    first = CliRunner().invoke(cli.app, [*args, "--batch-size", "2", "--mock-generation"])
    assert first.exit_code == 0, first.output
    with output.open(encoding="utf-8", newline="") as handle:
        rows = list(csv.reader(handle))
    output.write_text("\r\n".join(",".join(row) for row in rows[:3]) + "\r\n", encoding="utf-8")

    resumed = CliRunner().invoke(cli.app, [*args, "--resume", "--mock-generation"])

    assert resumed.exit_code == 0, resumed.output
    assert "Processed 1 of 3 row(s) in 1 batch(es)" in resumed.output
    assert "Resumed after 2 previously written row(s)" in resumed.output
    with output.open(encoding="utf-8", newline="") as handle:
        assert [record["ID"] for record in csv.DictReader(handle)] == ["1", "2", "3"]


def test_run_rejects_non_csv_input(cli, tmp_path: Path) -> None:
    cache = tmp_path / "cache.json"
    cache.write_text(json.dumps({"shoe.jpg": f"{CDN}/shoe.jpg"}), encoding="utf-8")
    export = tmp_path / "export.json"
    export.write_text("[]", encoding="utf-8")
    output = tmp_path / "out.csv"

    result = CliRunner().invoke(
        cli.app,
        ["run", str(export), "--cache-path", str(cache), "--output", str(output), "--mock-generation"],
    )

    assert result.exit_code == 1
    assert "Error: Unsupported file format" in result.output
    assert not output.exists()

def test_run_without_cache_requires_source_credentials(cli, tmp_path: Path, write_export) -> None:
    result = CliRunner().invoke(
        cli.app,
        [
            "run",
            str(_export(write_export)),
            "--cache-path",
            str(tmp_path / "missing.json"),
            "--output",
            str(tmp_path / "out.csv"),
            "--mock-generation",
        ],
    )

    assert result.exit_code == 1
    assert "SHOPIFY_SHOP_DOMAIN" in result.output


def test_index_command_sweeps_all_collections(cli, monkeypatch, tmp_path: Path) -> None:
    class StaticSource:
        def execute(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
            if "files(first:" in query:
                node = {"image": {"url": f"{CDN}/shoe.jpg"}}
                return {"files": {"pageInfo": {"hasNextPage": False}, "edges": [{"cursor": "f1", "node": node}]}}
            if "collections(first:" in query:
                node = {"image": None}
                return {"collections": {"pageInfo": {"hasNextPage": False}, "edges": [{"cursor": "c1", "node": node}]}}
            node = {"images": {"edges": [{"node": {"url": f"{CDN}/shoe.jpg"}}]}}
            return {"products": {"pageInfo": {"hasNextPage": False}, "edges": [{"cursor": "p1", "node": node}]}}

    monkeypatch.setattr(cli, "build_source_client", lambda cfg: StaticSource())
    cache = tmp_path / "cache.json"

    result = CliRunner().invoke(cli.app, ["index", "--cache-path", str(cache)])

    assert result.exit_code == 0, result.output
    assert "Swept collection images: 0 indexed, 1 skipped, 1 page(s)" in result.output
    assert json.loads(cache.read_text(encoding="utf-8")) == {
        "shoe.jpg": f"{CDN}/shoe.jpg",
        "shoe.jpg_product": f"{CDN}/shoe.jpg",
    }


def test_lookup_uses_suffix_fallback(cli, tmp_path: Path) -> None:
    cache = tmp_path / "cache.json"
    cache.write_text(json.dumps({"shoe.jpg": f"{CDN}/shoe.jpg"}), encoding="utf-8")

    found = CliRunner().invoke(cli.app, ["lookup", "shoe.jpg_collection", "--cache-path", str(cache)])
    missing = CliRunner().invoke(cli.app, ["lookup", "boot.jpg", "--cache-path", str(cache)])

    assert found.exit_code == 0
    assert f"shoe.jpg → {CDN}/shoe.jpg" in found.output
    assert missing.exit_code == 1
