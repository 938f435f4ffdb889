from ugcpipe.pipeline.concat import CONCAT_COMMAND, build_concat_script, clip_filename


def test_no_recipe_for_single_clip():
    assert build_concat_script([]) is None
    assert build_concat_script([3]) is None


def test_recipe_lists_clips_in_scene_order():
    script = build_concat_script([3, 1, 4])

    files = [line for line in script.splitlines() if line.startswith("file ")]
    assert files == ["file 'clip_1.mp4'", "file 'clip_3.mp4'", "file 'clip_4.mp4'"]
    assert script.endswith("file 'clip_4.mp4'\n")


def test_recipe_instructions_are_comments():
    script = build_concat_script([1, 2])

    header = script.split("\n\n")[0].splitlines()
    assert all(line.startswith("# ") for line in header)
    assert f"# 3. Run: {CONCAT_COMMAND}" in header


def test_clip_filename():
    assert clip_filename(2) == "clip_2.mp4"
