"""Tests for the command-line entry point."""

import json

import pytest
import requests

import main as cli

HTML = '<script src="https://code.jquery.com/jquery-3.2.1.min.js"></script>'


class TestMain:
    """Tests for main()."""

    def test_rules(self, capsys):
        assert cli.main(["rules", "AdGuard"]) == 0
        out = capsys.readouterr().out
        assert "@@||code.jquery.com^" in out
        assert "www.gstatic.com" not in out

    def test_unknown_rule_format(self):
        with pytest.raises(SystemExit):
            cli.main(["rules", "NoScript"])

    def test_classify(self, capsys):
        code = cli.main([
            "--resource-root", "http://local.test",
            "classify", "https://code.jquery.com/jquery-3.2.1.min.js",
            "--initiator", "https://example.org/",
        ])
        assert code == 0
        out = capsys.readouterr().out
        assert "jQuery 3.4.1" in out

    def test_classify_block_missing(self, capsys):
        code = cli.main([
            "--block-missing",
            "classify", "https://cdn.example.net/widget.js",
        ])
        assert code == 0
        assert "block missing" in capsys.readouterr().out

    def test_table(self, capsys, monkeypatch):
        monkeypatch.setenv("COLUMNS", "200")
        assert cli.main(["table"]) == 0
        assert "ajax.googleapis.com" in capsys.readouterr().out

    def test_audit_writes_json(self, monkeypatch, tmp_path):
        monkeypatch.setattr(cli, "fetch_page_html", lambda url: HTML)
        output = tmp_path / "report.json"
        code = cli.main(["audit", "https://example.org/", "-o", str(output)])
        assert code == 0
        report = json.loads(output.read_text(encoding="utf-8"))
        assert report["summary"]["redirected"] == 1

    def test_audit_all_pages_fail(self, monkeypatch):
        def fail(url):
            raise requests.ConnectionError("unreachable")

        monkeypatch.setattr(cli, "fetch_page_html", fail)
        assert cli.main(["audit", "https://example.org/"]) == 1

    def test_settings_file(self, tmp_path, capsys):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"allowlisted_domains": ["example.org"]}))
        code = cli.main([
            "--settings", str(path),
            "classify", "https://code.jquery.com/jquery-3.2.1.min.js",
            "--initiator", "https://example.org/",
        ])
        assert code == 0
        assert "Pass" in capsys.readouterr().out
