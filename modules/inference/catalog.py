from __future__ import annotations

from dataclasses import dataclass
from typing import Literal


SubmitMode = Literal["sync", "async"]


@dataclass(frozen=True)
class ModelSpec:
    """How one hosted model is called.

    ``input_keys`` is the allow-list of input fields the model accepts; anything
    else is dropped before submission.
    """

    ref: str
    kind: Literal["generate", "tryon"]
    mode: SubmitMode
    input_keys: frozenset[str]
    description: str = ""

    @property
    def owner_name(self) -> str:
        return self.ref.split(":", 1)[0]

    @property
    def version(self) -> str | None:
        if ":" in self.ref:
            return self.ref.split(":", 1)[1]
        return None


_GENERATE_MINIMAL = frozenset({"prompt", "image", "mask"})

CATALOG: dict[str, ModelSpec] = {
    "ideogram-ai/ideogram-v2": ModelSpec(
        ref="ideogram-ai/ideogram-v2",
        kind="generate",
        mode="sync",
        input_keys=frozenset(
            {
                "prompt",
                "image",
                "mask",
                "aspect_ratio",
                "magic_prompt_option",
                "style_type",
                "negative_prompt",
                "seed",
            }
        ),
        description="Text-to-image and inpainting with style controls",
    ),
    "ideogram-ai/ideogram-v2-turbo": ModelSpec(
        ref="ideogram-ai/ideogram-v2-turbo",
        kind="generate",
        mode="sync",
        input_keys=frozenset(
            {"prompt", "image", "mask", "aspect_ratio", "magic_prompt_option", "style_type", "seed"}
        ),
        description="Faster ideogram variant",
    ),
    "google/nano-banana-pro": ModelSpec(
        ref="google/nano-banana-pro",
        kind="generate",
        mode="sync",
        input_keys=_GENERATE_MINIMAL,
        description="Prompt-only inputs plus optional image/mask",
    ),
}

TRYON_INPUT_KEYS = frozenset({"person_image", "garment_image", "garment_image_2"})


def generate_spec(ref: str) -> ModelSpec:
    """Catalog entry for ``ref``; unknown models get the minimal prompt/image/mask schema."""
    if ref in CATALOG:
        return CATALOG[ref]
    return ModelSpec(ref=ref, kind="generate", mode="sync", input_keys=_GENERATE_MINIMAL)


def tryon_spec(version_ref: str) -> ModelSpec:
    # Try-on models are addressed by version and always polled.
    return ModelSpec(
        ref=version_ref,
        kind="tryon",
        mode="async",
        input_keys=TRYON_INPUT_KEYS,
        description="Person + garment virtual try-on",
    )
