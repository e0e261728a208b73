import pytest

from modules.inference.errors import UnexpectedOutputError
from modules.inference.normalize import (
    ArrayOfObject,
    ArrayOfURL,
    ObjectWithField,
    PlainURL,
    classify_output,
    normalize_output,
    preview,
)

URL = "https://replicate.delivery/pbxt/abc/out.png"


@pytest.mark.parametrize(
    "output,expected",
    [
        (URL, PlainURL(URL)),
        ([URL, "https://other/2.png"], ArrayOfURL(URL)),
        ((URL,), ArrayOfURL(URL)),
        ([{"url": URL}], ArrayOfObject(url=URL, field="url")),
        ([{"href": URL}], ArrayOfObject(url=URL, field="href")),
        ({"url": URL}, ObjectWithField(url=URL, field="url")),
        ({"href": URL}, ObjectWithField(url=URL, field="href")),
        ({"output": URL}, ObjectWithField(url=URL, field="output")),
    ],
)
def test_known_shapes_resolve(output, expected) -> None:
    assert classify_output(output) == expected
    assert normalize_output(output) == URL


def test_precedence_url_before_href_before_output() -> None:
    assert normalize_output({"output": "c", "href": "b", "url": "a"}) == "a"
    assert normalize_output({"output": "c", "href": "b"}) == "b"
    assert normalize_output([{"href": "h", "url": "u"}]) == "u"


def test_array_only_inspects_first_element() -> None:
    with pytest.raises(UnexpectedOutputError):
        normalize_output([None, URL])


@pytest.mark.parametrize(
    "output",
    [
        None,
        "",
        [],
        [""],
        [{"url": ""}],
        [{"output": URL}],
        [[URL]],
        {"output": {"url": URL}},
        {"url": 123},
        {"images": [URL]},
        42,
        True,
    ],
)
def test_unknown_shapes_fail(output) -> None:
    assert classify_output(output) is None
    with pytest.raises(UnexpectedOutputError) as ei:
        normalize_output(output)
    assert ei.value.code == "unexpected_output"
    assert "outputType" in ei.value.diagnostics
    assert "outputPreview" in ei.value.diagnostics


def test_preview_is_bounded() -> None:
    payload = [{"x": "y" * 5000}] * 10
    out = preview(payload)
    assert len(out) == 2
    assert len(out[0]["x"]) <= 201

    wide = {f"k{i}": i for i in range(50)}
    assert len(preview(wide)) == 10

    with pytest.raises(UnexpectedOutputError) as ei:
        normalize_output([None, None, None, None])
    assert ei.value.diagnostics["outputPreview"] == [None, None]
    assert ei.value.diagnostics["outputType"] == "array"
