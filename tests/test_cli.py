import io
import json

from PIL import Image

from tools.tryon_cli.main import main


def test_cli_mask_writes_png(tmp_path, capsys) -> None:
    photo = tmp_path / "me.png"
    Image.new("RGB", (30, 60), "gray").save(photo)
    out = tmp_path / "out" / "mask.png"
    assert main(["mask", str(photo), "--out", str(out)]) == 0
    assert Image.open(io.BytesIO(out.read_bytes())).size == (30, 60)
    assert json.loads(capsys.readouterr().out)["mask"] == str(out)


def test_cli_models(capsys) -> None:
    assert main(["models"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert any(m["ref"] == "ideogram-ai/ideogram-v2" for m in data["models"])


def test_cli_generate_without_token(monkeypatch, capsys) -> None:
    monkeypatch.delenv("REPLICATE_API_TOKEN", raising=False)
    assert main(["generate", "--prompt", "red jacket"]) == 2
    data = json.loads(capsys.readouterr().out)
    assert data == {"error": "Missing REPLICATE_API_TOKEN", "code": "configuration"}


def test_cli_generate_validates_before_network(monkeypatch, capsys) -> None:
    monkeypatch.setenv("REPLICATE_API_TOKEN", "r8_test")
    assert main(["generate", "--prompt", "   "]) == 2
    assert json.loads(capsys.readouterr().out)["error"] == "prompt is required"


def test_cli_upload_without_storage(monkeypatch, tmp_path, capsys) -> None:
    monkeypatch.delenv("TRYON_S3_BUCKET", raising=False)
    f = tmp_path / "me.png"
    f.write_bytes(b"x")
    assert main(["upload", str(f)]) == 2
    assert json.loads(capsys.readouterr().out)["code"] == "configuration"


def test_cli_generate_types_param_values(monkeypatch, capsys) -> None:
    import tools.tryon_cli.main as cli
    from modules.inference.service import NormalizedResult

    monkeypatch.setenv("REPLICATE_API_TOKEN", "r8_test")
    seen: dict = {}

    async def fake_generate(client, spec, req, **kwargs):
        seen.update(req.parameters)
        return NormalizedResult(image_url="https://replicate.delivery/out.png")

    monkeypatch.setattr(cli, "generate_image", fake_generate)
    argv = ["generate", "--prompt", "red jacket", "--param", "seed=42", "--param", "style_type=Realistic"]
    assert main(argv) == 0
    assert seen == {"seed": 42, "style_type": "Realistic"}
    assert json.loads(capsys.readouterr().out) == {"imageUrl": "https://replicate.delivery/out.png"}
