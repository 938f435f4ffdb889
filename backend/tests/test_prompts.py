import pytest

from ugcpipe.pipeline.prompts import (
    build_avatar_video_prompt,
    build_photo_prompt,
    build_product_video_prompt,
)


def test_avatar_prompt_mentions_inputs():
    prompt = build_avatar_video_prompt(
        "This serum changed my mornings",
        scene_type="hook",
        avatar_description="Man in his 30s with a beard",
        product_description="Glow Serum",
        setting="Bathroom mirror",
        aspect_ratio="16:9",
    )

    assert '"This serum changed my mornings"' in prompt
    assert "Man in his 30s with a beard" in prompt
    assert "Glow Serum" in prompt
    assert "Bathroom mirror" in prompt
    assert "16:9" in prompt


def test_avatar_prompt_requires_script():
    with pytest.raises(ValueError):
        build_avatar_video_prompt("  ")


def test_product_prompt_presenter_and_action():
    prompt = build_product_video_prompt(
        "Trail Bottle",
        "unbox",
        include_presenter=True,
        presenter_description="Hiker in a red jacket",
    )

    assert "Product: Trail Bottle" in prompt
    assert "unboxing" in prompt
    assert "Hiker in a red jacket" in prompt


def test_product_prompt_rejects_unknown_action():
    with pytest.raises(ValueError):
        build_product_video_prompt("Trail Bottle", "juggle")


def test_photo_prompt_style_and_product():
    prompt = build_photo_prompt("Woman on a balcony", style="selfie", product_name="Sunnies")

    assert "Subject: Woman on a balcony" in prompt
    assert "selfie" in prompt
    assert "(Sunnies)" in prompt
