"""Prompt builders for the three generation modes.

The wording here is tuning, not contract: callers only rely on each
builder returning a non-empty prompt that mentions the supplied inputs.
"""

from typing import Optional

_FORMAT_LINES = {
    "9:16": "Vertical 9:16 format (TikTok/Reels style)",
    "16:9": "Horizontal 16:9 format (YouTube style)",
    "1:1": "Square 1:1 format (feed post style)",
}

_SCENE_GUIDANCE = {
    "hook": "This is an attention-grabbing hook: energetic and immediately captivating.",
    "demo": "This is a product demonstration: informative, showing the product clearly.",
    "cta": "This is a call-to-action: persuasive and direct.",
    "custom": "",
}

_ACTION_GUIDANCE = {
    "hold": "The product is held up to the camera, clearly visible, showcased proudly.",
    "point": "The presenter points at specific features of the product, drawing attention to details.",
    "use": "The product is actively used, showing it in action and its practical benefits.",
    "unbox": "An unboxing: the product is revealed from its packaging with genuine excitement.",
    "demo": "A detailed demonstration showing how the product works step by step.",
}

_PHOTO_STYLES = {
    "casual": "casual, candid photo, natural lighting, relaxed atmosphere, authentic social media aesthetic",
    "professional": "professional portrait, studio-quality lighting, polished appearance, brand-ready",
    "lifestyle": "lifestyle photography, natural environment, aspirational mood, editorial quality",
    "selfie": "front-facing selfie, phone camera perspective, close-up portrait, genuine expression",
}


def _format_line(aspect_ratio: str) -> str:
    return _FORMAT_LINES.get(aspect_ratio, _FORMAT_LINES["9:16"])


def build_avatar_video_prompt(
    script: str,
    *,
    scene_type: Optional[str] = None,
    avatar_description: Optional[str] = None,
    product_description: Optional[str] = None,
    action: Optional[str] = None,
    setting: Optional[str] = None,
    aspect_ratio: str = "9:16",
) -> str:
    """Talking-head UGC clip delivering ``script`` to camera."""
    if not script or not script.strip():
        raise ValueError("Scene script is empty")

    sections = ["Create a UGC-style talking head video for social media."]
    if avatar_description:
        sections.append(f"The person in the video must look exactly like this: {avatar_description}")
    sections.append(
        "The person speaks directly to the camera, delivering this script "
        f'naturally and engagingly:\n\n"{script.strip()}"'
    )
    if action:
        sections.append(f"What they are doing: {action}")
    if product_description:
        sections.append(f"They are featuring this product: {product_description}")
    guidance = _SCENE_GUIDANCE.get(scene_type or "custom", "")
    if guidance:
        sections.append(f"Style: {guidance}")
    if setting:
        sections.append(f"Setting/Location: {setting}")
    sections.append(
        "Technical requirements:\n"
        f"- {_format_line(aspect_ratio)}\n"
        "- Direct eye contact with camera\n"
        "- Good lighting on face\n"
        "- Natural, authentic speaking style\n"
        "- Phone-captured aesthetic"
    )
    return "\n\n".join(sections)


def build_product_video_prompt(
    product_name: str,
    action: str,
    *,
    product_description: Optional[str] = None,
    script: Optional[str] = None,
    include_presenter: bool = False,
    presenter_description: Optional[str] = None,
    setting: Optional[str] = None,
    aspect_ratio: str = "9:16",
) -> str:
    """Product-focused clip performing one of the product actions."""
    if action not in _ACTION_GUIDANCE:
        raise ValueError(f"Unknown product action: {action}")

    header = f"Create a product-focused video for social media.\n\nProduct: {product_name}"
    if product_description:
        header += f"\nDescription: {product_description}"
    sections = [header, f"Action: {_ACTION_GUIDANCE[action]}"]

    if script:
        sections.append(f'The person should be saying: "{script}"')
    if include_presenter and presenter_description:
        sections.append(f"The presenter should match this description: {presenter_description}")
    elif include_presenter:
        sections.append("Include a presenter/influencer showing the product.")
    if setting:
        sections.append(f"Setting: {setting}")

    focus = (
        "Direct eye contact with camera when speaking"
        if include_presenter
        else "Focus on the product throughout"
    )
    sections.append(
        "Technical requirements:\n"
        f"- {_format_line(aspect_ratio)}\n"
        "- Product clearly visible and well-lit\n"
        "- Professional but authentic UGC aesthetic\n"
        f"- {focus}\n"
        "- Clean, attractive background"
    )
    return "\n\n".join(sections)


def build_photo_prompt(
    subject: str,
    *,
    style: str = "casual",
    product_name: Optional[str] = None,
    aspect_ratio: str = "9:16",
) -> str:
    """Photorealistic influencer photo of ``subject``."""
    style_desc = _PHOTO_STYLES.get(style, _PHOTO_STYLES["casual"])
    product_context = ""
    if product_name:
        product_context = (
            "\n\nProduct Integration: The subject is holding, wearing, or interacting with "
            f"a product ({product_name}). The product is naturally integrated into the scene, "
            "clearly visible but not overly promotional."
        )
    composition = (
        "Vertical portrait format suitable for Stories/Reels or TikTok"
        if aspect_ratio == "9:16"
        else "Standard social media format"
    )
    return (
        "Create a photorealistic image for social media content.\n\n"
        f"Subject: {subject}\n\n"
        f"Style: {style_desc}{product_context}\n\n"
        f"Composition: {composition}\n\n"
        "Quality: High-resolution, sharp focus on subject, natural skin tones. "
        "It should look captured by a content creator on a high-end smartphone."
    )
