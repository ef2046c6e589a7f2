from token_supply_alerts.main import main, parse_args


def test_parse_args_default_config() -> None:
    assert parse_args([]).config == "config.yaml"
    assert parse_args(["--config", "/etc/alerts.yaml"]).config == "/etc/alerts.yaml"


def test_main_exits_non_zero_on_missing_config(tmp_path) -> None:
    assert main(["--config", str(tmp_path / "nope.yaml")]) == 1


def test_main_exits_non_zero_on_invalid_asset(tmp_path, monkeypatch) -> None:
    monkeypatch.delenv("RPC_URL", raising=False)
    path = tmp_path / "config.yaml"
    path.write_text(
        "rpc_url: https://rpc.example.com\nassets:\n  - name: broken\n    address: nothex\n",
        encoding="utf-8",
    )
    assert main(["--config", str(path)]) == 1
