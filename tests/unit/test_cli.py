"""Unit tests for the command-line interface."""

import pytest

from retinaforge.cli import create_parser, main, parse_overrides
from retinaforge.config import (
    BarStimulusParams,
    ExperimentConfig,
    InnerRetinaConfig,
    MosaicSpec,
    RetinaForgeConfig,
)
from retinaforge.exceptions import ConfigurationError


def write_config(path, config):
    path.write_text(config.to_yaml(), encoding="utf-8")
    return str(path)


class TestParseOverrides:
    def test_yaml_scalars(self):
        overrides = parse_overrides(["bar_width=10", "os=biophys", "fov=1.6", "seed="])
        assert overrides == {"bar_width": 10, "os": "biophys", "fov": 1.6, "seed": None}

    def test_value_may_contain_equals(self):
        assert parse_overrides(["display=a=b"]) == {"display": "a=b"}

    def test_none(self):
        assert parse_overrides(None) == {}

    @pytest.mark.parametrize("pair", ["bar_width", "=10"])
    def test_malformed(self, pair):
        with pytest.raises(ConfigurationError):
            parse_overrides([pair])


class TestParser:
    def test_bar_arguments(self):
        args = create_parser().parse_args(
            ["bar", "--set", "bar_width=8", "--set", "os=hex", "--format", "hdf5"]
        )
        assert args.command == "bar"
        assert args.config is None
        assert args.set == ["bar_width=8", "os=hex"]
        assert args.format == "hdf5"
        assert not args.progress

    def test_inner_retina_requires_output(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["create-inner-retina", "config.yml"])


class TestMain:
    def test_no_command(self, capsys):
        assert main([]) == 1
        assert "usage" in capsys.readouterr().out

    def test_list_components(self, capsys):
        assert main(["list-components"]) == 0
        out = capsys.readouterr().out
        assert "LCD-Apple" in out
        assert "hex" in out
        assert "displayrgb" in out
        assert "LNP" in out

    def test_validate_good_config(self, tmp_path, capsys):
        path = write_config(tmp_path / "good.yml", RetinaForgeConfig())
        assert main(["validate", path]) == 0
        out = capsys.readouterr().out
        assert "✓ Configuration is valid!" in out
        assert "Frames: 181 (60 + 91 + 30)" in out

    def test_validate_reports_every_error(self, tmp_path, capsys):
        config = RetinaForgeConfig(
            stimulus=BarStimulusParams(bar_width=200, display="Projector"),
            inner_retina=InnerRetinaConfig(mosaics=[MosaicSpec("amacrine")]),
            experiment=ExperimentConfig(output_path="out.pt"),
        )
        path = write_config(tmp_path / "bad.yml", config)
        assert main(["validate", path]) == 1
        err = capsys.readouterr().err
        assert "stimulus: bar_width" in err
        assert "unknown display 'Projector'" in err
        assert "inner_retina:" in err
        assert "experiment: " in err
        assert "validation failed" in err

    def test_validate_missing_file(self, tmp_path, capsys):
        assert main(["validate", str(tmp_path / "missing.yml")]) == 1
        assert "not found" in capsys.readouterr().err

    def test_validate_duplicate_keys(self, tmp_path, capsys):
        path = tmp_path / "dup.yml"
        path.write_text("stimulus:\n  fov: 0.6\n  fov: 1.6\n", encoding="utf-8")
        assert main(["validate", str(path)]) == 1
        assert "Duplicate key" in capsys.readouterr().err

    def test_bar_unknown_override(self, capsys):
        assert main(["bar", "--set", "colour=red"]) == 1
        assert "colour" in capsys.readouterr().err

    def test_bar_invalid_override(self, capsys):
        assert main(["bar", "--set", "bar_width=96"]) == 1
        assert "bar_width" in capsys.readouterr().err

    def test_create_inner_retina(self, tmp_path, capsys):
        config = RetinaForgeConfig(
            inner_retina=InnerRetinaConfig(mosaics=[MosaicSpec("on parasol")], seed=1)
        )
        path = write_config(tmp_path / "ir.yml", config)
        output = tmp_path / "ir.pt"
        assert main(["create-inner-retina", path, "--output", str(output)]) == 0
        assert output.exists()
        assert "on parasol" in capsys.readouterr().out

    def test_experiment_missing_inner_retina(self, tmp_path, capsys):
        config = RetinaForgeConfig(experiment=ExperimentConfig(output_path=str(tmp_path / "o.pt")))
        path = write_config(tmp_path / "exp.yml", config)
        assert main(["experiment", path]) == 1
        assert "inner_retina_path" in capsys.readouterr().err
