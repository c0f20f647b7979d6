"""Data-driven instruction presets for the prediction service.

The generation instructions are composed from three user-selectable presets
(style, density, hairline) wrapped in fixed boilerplate that keeps the
subject's identity intact.  Presets are plain data: adding a variant means
adding a dictionary entry, not a new code path.

Instruction Structure::

    [Fixed: identity-preservation boilerplate]

    [Style preset]

    [Density preset]

    [Hairline preset]

    [Fixed: photographic-realism directive]

Sections are separated by double newlines.

Usage
-----
::

    instructions = build_instructions(style="natural", density="medium",
                                      hairline="age-appropriate")
"""

from __future__ import annotations

DEFAULT_STYLE = "natural"
DEFAULT_DENSITY = "medium"
DEFAULT_HAIRLINE = "age-appropriate"

# ---------------------------------------------------------------------------
# Preset tables.  Keys are the values accepted by the API form fields.
# ---------------------------------------------------------------------------

STYLE_PRESETS: dict[str, str] = {
    "natural": (
        "Restore hair on the thinning and bald areas of the scalp so the result looks "
        "like a successful hair transplant twelve months after surgery."
    ),
    "dense": (
        "Restore a full head of hair on the thinning and bald areas of the scalp, "
        "as after a high-graft-count hair transplant."
    ),
    "conservative": (
        "Add a modest amount of hair to the thinning areas of the scalp, keeping the "
        "change subtle and realistic."
    ),
}

DENSITY_PRESETS: dict[str, str] = {
    "low": "Hair density should be light, with some scalp still visible under direct light.",
    "medium": "Hair density should be moderate and even across the restored area.",
    "high": "Hair density should be thick, with no scalp visible through the restored area.",
}

HAIRLINE_PRESETS: dict[str, str] = {
    "age-appropriate": (
        "Place the hairline at a natural height for the person's apparent age, with a soft, "
        "slightly irregular front edge."
    ),
    "youthful": "Place the hairline lower and straighter, as it would have been in early adulthood.",
    "mature": "Keep the hairline slightly receded at the temples, as is typical for a mature adult.",
}

_IDENTITY_BOILERPLATE = (
    "Edit this photo of a person. Keep the face, skin tone, expression, pose, clothing, "
    "lighting and background exactly the same."
)

_REALISM_BOILERPLATE = (
    "Match the color and texture of the person's existing hair. The result must look like an "
    "unedited photograph, with no visible seams, blur or painting artifacts."
)


def _lookup(table: dict[str, str], name: str, kind: str) -> str:
    try:
        return table[name]
    except KeyError:
        valid = ", ".join(sorted(table))
        raise KeyError(f"Unknown {kind} preset '{name}'. Valid options: {valid}") from None


def available_presets() -> dict[str, list[str]]:
    """Names of every preset, grouped by category."""
    return {
        "style": list(STYLE_PRESETS),
        "density": list(DENSITY_PRESETS),
        "hairline": list(HAIRLINE_PRESETS),
    }


def build_instructions(
    style: str = DEFAULT_STYLE,
    density: str = DEFAULT_DENSITY,
    hairline: str = DEFAULT_HAIRLINE,
) -> str:
    """Compile the generation instructions for the chosen presets.

    Args:
        style: Key into :data:`STYLE_PRESETS`.
        density: Key into :data:`DENSITY_PRESETS`.
        hairline: Key into :data:`HAIRLINE_PRESETS`.

    Returns:
        The instruction string with sections separated by double newlines.

    Raises:
        KeyError: If any preset name is unknown.  The message lists the
            valid options.
    """
    parts = [
        _IDENTITY_BOILERPLATE,
        _lookup(STYLE_PRESETS, style, "style"),
        _lookup(DENSITY_PRESETS, density, "density"),
        _lookup(HAIRLINE_PRESETS, hairline, "hairline"),
        _REALISM_BOILERPLATE,
    ]
    return "\n\n".join(parts)
