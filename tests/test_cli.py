"""
Тесты командной строки.
"""

import json

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from fetcher_core import cli
from fetcher_core.errors import InvalidUrlError


def fake_fetcher(**methods):
    """PageInfoFetcher, используемый как асинхронный контекстный менеджер."""
    fetcher = MagicMock()
    for name, value in methods.items():
        setattr(fetcher, name, value)
    fetcher.__aenter__ = AsyncMock(return_value=fetcher)
    fetcher.__aexit__ = AsyncMock(return_value=None)
    return fetcher


class TestCli:
    """Тесты команд CLI."""

    def test_extract(self, capsys):
        assert cli.main(["extract", "Was $49.99, now $29.99"]) == 0
        assert "$49.99" in capsys.readouterr().out

    def test_extract_nothing(self, capsys):
        assert cli.main(["extract", "Loading..."]) == 1
        assert "Ничего не найдено" in capsys.readouterr().out

    def test_sanitize(self, capsys):
        record = json.dumps({"title": "T<script>x</script>", "price": "$5", "url": "https://a.example.com"})
        assert cli.main(["sanitize", record]) == 0
        out = capsys.readouterr().out
        assert "https://a.example.com" in out
        assert "script" not in out

    def test_sanitize_rejected(self):
        record = json.dumps({"title": "", "price": "$5", "url": "https://a.example.com"})
        assert cli.main(["sanitize", record]) == 1

    def test_fetch_with_output(self, tmp_path, capsys):
        info = {"title": "Чайник", "price": "$29.99", "url": "https://shop.example.com/1"}
        fetcher = fake_fetcher(fetch_page_info=AsyncMock(return_value=info))
        output = tmp_path / "result.json"

        with patch.object(cli, "PageInfoFetcher", return_value=fetcher) as factory:
            code = cli.main(["--headless", "-o", str(output), "fetch", "https://shop.example.com/1"])

        assert code == 0
        config = factory.call_args.args[0]
        assert config.driver.headless is True
        fetcher.fetch_page_info.assert_awaited_once_with("https://shop.example.com/1")
        assert json.loads(output.read_text(encoding="utf-8")) == [info]
        assert "Чайник" in capsys.readouterr().out

    def test_fetch_error(self):
        fetcher = fake_fetcher(
            fetch_page_info=AsyncMock(side_effect=InvalidUrlError("bad", "Нужен http(s)"))
        )
        with patch.object(cli, "PageInfoFetcher", return_value=fetcher):
            assert cli.main(["fetch", "bad"]) == 1

    def test_current(self):
        info = {"title": "T", "price": "$1.00", "url": "https://a.example.com"}
        fetcher = fake_fetcher(get_current_tab_info=AsyncMock(return_value=info))
        with patch.object(cli, "PageInfoFetcher", return_value=fetcher):
            assert cli.main(["current"]) == 0
        fetcher.get_current_tab_info.assert_awaited_once()

    def test_bad_config(self, tmp_path):
        config_file = tmp_path / "bad.json"
        config_file.write_text("{broken", encoding="utf-8")
        assert cli.main(["--config", str(config_file), "extract", "$1"]) == 2

    def test_command_required(self):
        with pytest.raises(SystemExit):
            cli.main([])
