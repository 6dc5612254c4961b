from autoconvert.config import AppConfig, load_config


def test_missing_file_uses_defaults(tmp_path, monkeypatch, caplog):
    monkeypatch.delenv("BINANCE_API_KEY", raising=False)
    monkeypatch.delenv("BINANCE_API_SECRET", raising=False)

    cfg = load_config(tmp_path / "absent.yaml")

    assert cfg == AppConfig()
    assert cfg.conversion_rules().get("ETH") == (("USDT", 100.0),)
    assert "Using default config" in caplog.text


def test_broken_yaml_uses_defaults(tmp_path, monkeypatch):
    monkeypatch.delenv("BINANCE_API_KEY", raising=False)
    monkeypatch.delenv("BINANCE_API_SECRET", raising=False)
    path = tmp_path / "config.yaml"
    path.write_text("sell_all: [unclosed\n", encoding="utf-8")

    assert load_config(path) == AppConfig()


def test_reads_yaml_with_env_expansion(tmp_path, monkeypatch):
    monkeypatch.delenv("BINANCE_API_KEY", raising=False)
    monkeypatch.delenv("BINANCE_API_SECRET", raising=False)
    monkeypatch.setenv("TG_TOKEN", "123:abc")
    path = tmp_path / "config.yaml"
    path.write_text(
        "api_key: k\n"
        "secret_key: s\n"
        "bot_token: ${TG_TOKEN}\n"
        "bot_chat_id: 42\n"
        "order_timeout: 5\n"
        "sell_all:\n"
        "  eth:\n"
        "    usdt: 60\n"
        "    xrp: 40\n",
        encoding="utf-8",
    )

    cfg = load_config(path)

    assert cfg.api_key == "k"
    assert cfg.bot_token == "123:abc"
    assert cfg.bot_chat_id == 42
    assert cfg.order_timeout == 5.0
    assert cfg.conversion_rules().get("ETH") == (("USDT", 60.0), ("XRP", 40.0))


def test_environment_overrides_credentials(tmp_path, monkeypatch):
    monkeypatch.setenv("BINANCE_API_KEY", "env-key")
    monkeypatch.setenv("BINANCE_API_SECRET", "env-secret")

    cfg = load_config(tmp_path / "absent.yaml")

    assert cfg.api_key == "env-key"
    assert cfg.secret_key == "env-secret"
    assert cfg.redacted()["secret_key"] == "env-..."
