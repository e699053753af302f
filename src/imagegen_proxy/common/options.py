"""Generation option presets and YAML overrides."""
from __future__ import annotations
from dataclasses import dataclass, fields, replace
from typing import Any

import yaml

# Steers the model away from clean, glossy renders toward a rough hand-made look.
NEGATIVE_PROMPT = (
    "photorealistic, photograph, photo, realistic, hyperrealistic, 3d render, cgi, "
    "octane render, unreal engine, clean, polished, glossy, smooth shading, sharp focus, "
    "high detail, ultra detailed, 8k, 4k, hdr, studio lighting, professional, "
    "perfect lines, vector art, digital painting, airbrushed, plastic, symmetrical, "
    "stock photo, watermark, signature, text, logo, frame, border"
)

@dataclass(frozen=True)
class GenerationOptions:
    """Fixed upstream parameters merged with each prompt."""
    model: str
    width: int = 512
    height: int = 512
    steps: int = 4
    negative_prompt: str | None = NEGATIVE_PROMPT
    n: int = 1

    def to_payload(self, prompt: str) -> dict[str, Any]:
        """
        Build the upstream JSON body for a prompt.

        Args:
            prompt: User prompt, forwarded as-is.

        Returns:
            Payload dict; `negative_prompt` is left out when empty.
        """
        payload: dict[str, Any] = {
            "model": self.model,
            "prompt": prompt,
            "width": self.width,
            "height": self.height,
            "steps": self.steps,
            "n": self.n,
        }
        if self.negative_prompt:
            payload["negative_prompt"] = self.negative_prompt
        return payload


VARIANTS: dict[str, GenerationOptions] = {
    "free": GenerationOptions(model="black-forest-labs/FLUX.1-schnell-Free", steps=4),
    "paid": GenerationOptions(model="black-forest-labs/FLUX.1-schnell", steps=8),
}

def resolve_options(variant: str = "free", overrides_path: str | None = None) -> GenerationOptions:
    """
    Pick a variant preset and apply optional YAML overrides.

    Args:
        variant: Key into VARIANTS.
        overrides_path: YAML file mapping GenerationOptions fields to values.

    Raises:
        ValueError: unknown variant, non-mapping YAML, or unknown field.
    """
    try:
        options = VARIANTS[variant]
    except KeyError:
        known = ", ".join(sorted(VARIANTS))
        raise ValueError(f"Unknown generation variant {variant!r} (expected one of: {known})") from None

    if not overrides_path:
        return options

    with open(overrides_path, "r", encoding="utf-8") as f:
        cfg = yaml.safe_load(f) or {}
    if not isinstance(cfg, dict):
        raise ValueError(f"Generation options file {overrides_path} must contain a mapping")
    allowed = {f.name for f in fields(GenerationOptions)}
    unknown = sorted(set(cfg) - allowed)
    if unknown:
        raise ValueError(f"Unknown generation option(s) in {overrides_path}: {', '.join(unknown)}")

    coerced: dict[str, Any] = {}
    for key, value in cfg.items():
        if key in ("width", "height", "steps", "n"):
            coerced[key] = int(value)
        elif value is None:
            coerced[key] = None
        else:
            coerced[key] = str(value)
    return replace(options, **coerced)
