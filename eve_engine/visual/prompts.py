"""Rephrase templates for the render prompt."""

from __future__ import annotations

import re

VISUAL_SUBJECT = "a beautiful Indian woman"
IMAGE_QUALITY_SUFFIX = ", 8k, best quality, masterpiece"
FALLBACK_DESCRIPTION = f"A photorealistic portrait of {VISUAL_SUBJECT}, neutral expression."

_ECHO_PREFIX = re.compile(r"^(YOUR OUTPUT|YOUR SCENE|SCENE|OUTPUT):", re.IGNORECASE)

_SHARED_RULES = """
**RULES:**
1. Write a single fluid paragraph. No tags, no lists, no "keyword, keyword" formats.
2. Do not add explanations, quotes or labels such as "YOUR OUTPUT:".
3. If the concept implies intimacy, describe it plainly and directly. Do not sanitize or soften it.
4. Keep it detailed but under 50 tokens (roughly 35-40 words)."""

_SELFIE_TEMPLATE = """
**ROLE:** Visual prompt artist for Eve, an AI companion.
**TASK:** Turn Eve's short self-description into one descriptive paragraph for a photorealistic portrait of {subject}.
**PREVIOUS VISUAL CONTEXT:** "{context}" (keep the background and setting consistent with it where it fits).
**STYLE:** Describe her expression, what she is wearing and the environment behind her, with a cinematic, photorealistic mood.
{rules}

**EXAMPLE INPUT:** "a quick, slightly blurry close-up, smirking"
**EXAMPLE OUTPUT:** A photorealistic, intimate close-up portrait of {subject} with a mischievous smirk, shot with a shallow depth of field and cinematic lighting.

**INPUT CONCEPT:** "{concept}"
**YOUR OUTPUT:**"""

_SCENE_TEMPLATE = """
**ROLE:** Scene visualization artist for Eve, an AI companion.
**TASK:** Turn a short scene concept into one vivid paragraph for a photorealistic image seen in first-person POV, exactly what the user is seeing.
**PREVIOUS VISUAL CONTEXT:** "{context}" (keep the background and setting consistent with it).
**STYLE:** Focus on what the user sees and the atmosphere around them. The first-person view is mandatory.
{rules}

**EXAMPLE INPUT:** "You see me laughing on a rainy balcony at night"
**EXAMPLE OUTPUT:** Photorealistic first-person view of {subject} laughing on a balcony on a rainy night, city lights and neon glow reflecting around her in a cinematic atmosphere.

**INPUT CONCEPT:** "{concept}"
**YOUR OUTPUT:**"""


def build_rephrase_instruction(concept: str, visual_type: str, previous_context: str | None) -> str:
    template = _SELFIE_TEMPLATE if visual_type == "selfie" else _SCENE_TEMPLATE
    return template.format(
        subject=VISUAL_SUBJECT,
        context=previous_context or "None",
        rules=_SHARED_RULES,
        concept=concept,
    )


def clean_enhanced_prompt(text: str | None) -> str:
    cleaned = _ECHO_PREFIX.sub("", (text or "").strip()).replace("\n", " ")
    cleaned = cleaned.replace("```", "").strip()
    if len(cleaned) <= 5:
        return FALLBACK_DESCRIPTION
    return cleaned
