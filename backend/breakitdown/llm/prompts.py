"""Prompt templates: identification, one-level decomposition, knowledge cards.

All builders are pure string functions, so the same inputs always give the
same prompt.
"""

from __future__ import annotations

from collections.abc import Sequence

from pydantic import BaseModel, Field

from breakitdown.config import settings

# Closed set of leaf categories the model must terminate in.
RAW_MATERIALS: tuple[tuple[str, str], ...] = (
    ("Wood", "木材"),
    ("Cotton / Plant Fiber", "棉/植物纤维"),
    ("Natural Rubber", "天然橡胶"),
    ("Biomass", "生物质"),
    ("Crude Oil", "原油"),
    ("Coal", "煤炭"),
    ("Iron Ore", "铁矿石"),
    ("Copper Ore", "铜矿石"),
    ("Bauxite", "铝土矿"),
    ("Silica Sand", "硅砂"),
    ("Gold", "金"),
    ("Lithium", "锂"),
    ("Water", "水"),
    ("Clay / Stone", "黏土/石头"),
)

CUSTOM_ITEM_PLACEHOLDER = "{{ITEM}}"
CUSTOM_CONTEXT_PLACEHOLDER = "{{CONTEXT}}"
_NO_CONTEXT = "none"


class StyleOptions(BaseModel):
    """User tone controls for the decomposition prompt."""

    humor_level: int = Field(50, ge=0, le=100, description="0 = formal, 100 = playful")
    professional_level: int = Field(50, ge=0, le=100, description="0 = plain words, 100 = technical")
    custom_template: str | None = Field(
        None,
        description="Replaces the generated prompt; may use {{ITEM}} and {{CONTEXT}}",
    )


IDENTIFICATION_PROMPT = """Identify the main object in this image. Reply with JSON only, names and descriptions in {language}:

{{
  "name": "specific name (e.g. 'iPhone 15 Pro' rather than 'phone')",
  "category": "category (e.g. electronics, vehicle, furniture)",
  "brief_description": "objective description in 2-3 sentences covering materials and function",
  "icon": "one emoji that best represents the object",
  "searchTerm": "short English search term for a stock photo of the object"
}}

Rules:
1. The name must be accurate and specific.
2. The icon must match the object so a user recognises it without reading the name.
3. searchTerm must be English."""


_DECOMPOSITION_TEMPLATE = """Role: You are a manufacturing and materials expert analysing product composition and supply chains.

Task: Break down "{item}" into its constituent components or materials (one level only).{context_note}

SCOPE: decompose the object itself only.
- Include only parts that belong to the object.
- Exclude the environment (background, ground, air).
- Exclude detachable accessories and equipment unless they are an intrinsic part of the object.
- Exclude consumables and other items from the usage scene.
Examples:
- "Car" -> engine, body, tyres, seats (correct); adding petrol or engine oil is wrong.
- "Table-tennis table" -> net, table top, legs (correct); adding balls or paddles is wrong.
- "Laptop" -> screen, keyboard, mainboard, battery, casing (correct); adding a mouse is wrong.

CONSTRAINTS:
1. Maximum decomposition depth: {max_depth} levels in total.
2. Final leaf nodes MUST come from the raw material list below.
3. Return 3-5 major parts per level; skip minor components.
4. Prefer stopping one level early over decomposing one level too far.

RAW MATERIAL LIST (leaf nodes, mark is_raw_material = true):
{raw_materials}

DECISION RULES:
- A complete product -> split into 3-5 functional components, never straight into materials.
- A component -> split into sub-components or material types.
- Any single homogeneous material (plastic, glass, steel, aluminium alloy, rubber, timber, ...) -> jump
  directly to the raw materials it is made from: "plastic casing" -> Crude Oil; "glass panel" -> Silica Sand;
  "steel tube" -> Iron Ore, Coal; "rubber foot" -> Natural Rubber.
- Only an obvious composite (e.g. a circuit board, an LCD layer) gets one more intermediate level.
- Never walk through chemistry: "plastic" -> polyethylene -> ethylene monomer is wrong.
- Keep parts of one level at a similar level of abstraction.

Use {language} for all names and descriptions.

Output format: JSON only, no markdown.
{{
  "parent_item": "{item}",
  "parts": [
    {{
      "name": "component or material name",
      "description": "function or property in one sentence",
      "is_raw_material": true or false,
      "icon": "one emoji that identifies this part by its function",
      "searchTerm": "short English search term for a photo of this part"
    }}
  ]
}}"""

_HUMOR_PLAYFUL = "Style: use humorous, playful language with metaphors and wordplay to make the breakdown fun."
_HUMOR_LIGHT = "Style: keep a light, friendly tone with vivid wording."
_HUMOR_FORMAL = "Style: use serious, formal language and stay professional."
_PRO_TECHNICAL = "Depth: give detailed technical specifications, material properties and manufacturing processes."
_PRO_PLAIN = "Depth: use plain everyday language and avoid jargon."


_KNOWLEDGE_CARD_TEMPLATE = """Create a manufacturing process card for "{name}" ({description}) using these parts:

{children}

Return JSON only, no markdown:
{{
  "title": "{name} manufacturing process",
  "doc_number": "{doc_number}",
  "steps": [
    {{
      "step_number": 1,
      "action_title": "step title (2-5 words)",
      "description": "what happens in this step (at most 100 words)",
      "parameters": [
        {{"label": "Core material", "value": "specific material"}},
        {{"label": "Key parameter", "value": "temperature / pressure / etc."}}
      ],
      "ai_image_prompt": "Technical drawing of [action], vintage blueprint style, white background"
    }}
  ]
}}

Rules:
1. 1-5 steps in manufacturing order.
2. Every description MUST mention the part names above verbatim (e.g. "{first_child}").
3. 1-2 parameters per step; label is "Core material" or "Key parameter"; prefer the part names as values.
4. ai_image_prompt is English.
5. Use {language} for titles and descriptions."""


def _raw_material_lines() -> str:
    return "\n".join(f"- {en} ({zh})" for en, zh in RAW_MATERIALS)


def style_fragments(style: StyleOptions) -> list[str]:
    """Instruction lines for the two tone sliders (may be empty)."""
    lines: list[str] = []
    if style.humor_level > 70:
        lines.append(_HUMOR_PLAYFUL)
    elif style.humor_level > 40:
        lines.append(_HUMOR_LIGHT)
    elif style.humor_level < 20:
        lines.append(_HUMOR_FORMAL)

    if style.professional_level > 70:
        lines.append(_PRO_TECHNICAL)
    elif style.professional_level < 30:
        lines.append(_PRO_PLAIN)
    return lines


def render_custom_template(template: str, item_name: str, parent_context: str | None) -> str:
    return template.replace(CUSTOM_ITEM_PLACEHOLDER, item_name).replace(
        CUSTOM_CONTEXT_PLACEHOLDER, parent_context or _NO_CONTEXT
    )


def build_decomposition_prompt(
    item_name: str,
    parent_context: str | None = None,
    style: StyleOptions | None = None,
    *,
    max_depth: int | None = None,
    language: str | None = None,
) -> str:
    """Instruction text for one decomposition step of ``item_name``.

    A non-blank ``style.custom_template`` replaces the generated prompt
    entirely. Otherwise the slider fragments are appended to the base prompt.
    """
    if style is not None and style.custom_template and style.custom_template.strip():
        return render_custom_template(style.custom_template, item_name, parent_context)

    context_note = f'\nContext: this item is part of "{parent_context}".' if parent_context else ""
    prompt = _DECOMPOSITION_TEMPLATE.format(
        item=item_name,
        context_note=context_note,
        max_depth=max_depth if max_depth is not None else settings.max_depth,
        raw_materials=_raw_material_lines(),
        language=language or settings.output_language,
    )

    if style is None:
        return prompt
    fragments = style_fragments(style)
    if not fragments:
        return prompt
    return prompt + "\n\n" + "\n".join(fragments)


def build_identification_prompt(language: str | None = None) -> str:
    return IDENTIFICATION_PROMPT.format(language=language or settings.output_language)


def build_knowledge_card_prompt(
    name: str,
    description: str,
    children: Sequence[tuple[str, str, bool]],
    *,
    doc_number: str,
    language: str | None = None,
) -> str:
    """Card prompt from a node and its revealed children ``(name, description, is_raw)``."""
    child_lines = "\n".join(
        f"{i}. {c_name}{' (raw material)' if is_raw else ''}: {c_desc}"
        for i, (c_name, c_desc, is_raw) in enumerate(children, start=1)
    )
    return _KNOWLEDGE_CARD_TEMPLATE.format(
        name=name,
        description=description or name,
        children=child_lines,
        doc_number=doc_number,
        first_child=children[0][0] if children else name,
        language=language or settings.output_language,
    )


_TEMPLATES = {
    "identify": IDENTIFICATION_PROMPT,
    "decompose": _DECOMPOSITION_TEMPLATE,
    "knowledge_card": _KNOWLEDGE_CARD_TEMPLATE,
}


def get_all_templates() -> dict[str, str]:
    """Return all prompt templates keyed by task name."""
    return dict(_TEMPLATES)
