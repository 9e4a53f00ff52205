"""Tests for the Hydra-based CLI (cli.py)."""

from __future__ import annotations

from pathlib import Path

from hydra import compose, initialize_config_dir

import proposal_builder
from proposal_builder._hydra_conf import CLI_ONLY_KEYS, BuilderConf, register_configs
from proposal_builder.cli import _MODE_DISPATCH, _to_builder_config
from proposal_builder.models import BuilderConfig

CONF_DIR = str(Path(proposal_builder.__file__).resolve().parent / "conf")


class TestDefaultConfig:
    """Verify the package's conf/config.yaml loads correctly."""

    def test_default_config_loads(self):
        register_configs()
        with initialize_config_dir(config_dir=CONF_DIR, version_base=None):
            cfg = compose(config_name="config")
            assert cfg.mode == "new"
            assert cfg.format == "pdf"
            assert cfg.history_limit == 20

    def test_default_config_converts_to_builder_config(self, monkeypatch):
        monkeypatch.setenv("GROQ_API_KEY", "test")
        monkeypatch.delenv("GROQ_BASE_URL", raising=False)

        register_configs()
        with initialize_config_dir(config_dir=CONF_DIR, version_base=None):
            cfg = compose(config_name="config")
            config = _to_builder_config(cfg)
            assert isinstance(config, BuilderConfig)
            assert config.llm.api_key == "test"
            assert config.llm.endpoint == "https://api.groq.com/openai/v1"
            assert config.brand.accent_color == "#E85D2B"

    def test_overrides(self):
        register_configs()
        with initialize_config_dir(config_dir=CONF_DIR, version_base=None):
            cfg = compose(
                config_name="config",
                overrides=["mode=export", "proposal_id=abc", "format=docx", "offline=true"],
            )
            assert cfg.mode == "export"
            assert cfg.proposal_id == "abc"
            assert _to_builder_config(cfg).offline is True


class TestModeDispatch:
    """Verify mode dispatch table."""

    def test_all_modes_present(self):
        expected = {"new", "resume", "list", "revise", "export", "render", "draft"}
        assert set(_MODE_DISPATCH.keys()) == expected

    def test_all_modes_are_callable(self):
        for name, handler in _MODE_DISPATCH.items():
            assert callable(handler), f"Handler for mode {name!r} is not callable"


class TestCliOnlyKeys:
    """CLI_ONLY_KEYS should match the extra fields in BuilderConf."""

    def test_cli_keys_not_in_builder_config(self):
        fields = set(BuilderConfig.model_fields.keys())
        for key in CLI_ONLY_KEYS:
            assert key not in fields, f"CLI-only key {key!r} found in BuilderConfig"

    def test_cli_keys_in_builder_conf(self):
        conf_fields = {f.name for f in BuilderConf.__dataclass_fields__.values()}
        for key in CLI_ONLY_KEYS:
            assert key in conf_fields, f"CLI-only key {key!r} not found in BuilderConf"

    def test_remaining_conf_fields_match_builder_config(self):
        conf_fields = {f.name for f in BuilderConf.__dataclass_fields__.values()}
        assert conf_fields - CLI_ONLY_KEYS == set(BuilderConfig.model_fields.keys())
