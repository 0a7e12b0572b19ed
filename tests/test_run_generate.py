import json

from run_generate import DEFAULT_SEED, build_parser, main, parameters_from_args
from spiralgen import GalaxyParameters, load_parameters, save_parameters


def test_generate_writes_params(tmp_path, capsys):
    assert main(["--count", "500", "--branches", "3", "--seed", "3",
                 "--out_dir", str(tmp_path)]) == 0

    params, seed = load_parameters(str(tmp_path / "params.json"))
    assert params.count == 500
    assert params.branches == 3
    assert seed == 3

    out = capsys.readouterr().out
    assert "500 points generated" in out
    assert "ACCEPTANCE TESTS" in out


def test_invalid_parameters_exit_with_status_2(tmp_path, capsys):
    assert main(["--branches", "0", "--out_dir", str(tmp_path)]) == 2
    assert "branches" in capsys.readouterr().err
    assert not (tmp_path / "params.json").exists()


def test_flags_override_params_file(tmp_path):
    path = tmp_path / "base.json"
    save_parameters(str(path), GalaxyParameters(count=300, spin=2.0), seed=21)

    args = build_parser().parse_args(["--params_file", str(path), "--spin", "0.5"])
    params, seed = parameters_from_args(args)
    assert params.count == 300
    assert params.spin == 0.5
    assert seed == 21


def test_default_seed_and_parameters():
    params, seed = parameters_from_args(build_parser().parse_args([]))
    assert params == GalaxyParameters()
    assert seed == DEFAULT_SEED


def test_no_params_flag(tmp_path):
    assert main(["--count", "100", "--no_params", "--out_dir", str(tmp_path / "out")]) == 0
    assert not (tmp_path / "out").exists()


def test_save_renders_image(tmp_path):
    image = tmp_path / "galaxy.png"
    assert main(["--count", "200", "--out_dir", str(tmp_path),
                 "--save", str(image)]) == 0
    assert image.stat().st_size > 0
    data = json.loads((tmp_path / "params.json").read_text())
    assert data["count"] == 200


def test_negative_seed_flag_exits_with_status_2(tmp_path, capsys):
    assert main(["--count", "100", "--seed", "-1", "--out_dir", str(tmp_path)]) == 2
    assert "seed" in capsys.readouterr().err
    assert not (tmp_path / "params.json").exists()


def test_negative_seed_in_params_file_exits_with_status_2(tmp_path, capsys):
    path = tmp_path / "base.json"
    path.write_text(json.dumps({"count": 100, "seed": -5}))
    assert main(["--params_file", str(path), "--out_dir", str(tmp_path)]) == 2
    assert "seed" in capsys.readouterr().err
