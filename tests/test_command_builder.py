"""Tests for the command builder and pipeline serializer."""

import shlex

from vioraedit.compiler import compile_edit_state
from vioraedit.executor.command_builder import (
    CommandBuilder,
    FilterChain,
    literal_path,
    serialize_pipeline,
)
from vioraedit.models import (
    AudioTrack,
    EditState,
    StickerOverlay,
    TextOverlay,
    VideoFilter,
)


def _value_after(args, flag):
    return args[args.index(flag) + 1]


class TestFilterChain:
    """Tests for FilterChain."""

    def test_empty_chain(self):
        assert FilterChain().to_string() == ""

    def test_linear_chain(self):
        chain = FilterChain().add("eq=brightness=0.2").add("setpts=0.5*PTS")
        assert chain.to_string() == "eq=brightness=0.2,setpts=0.5*PTS"

    def test_sourced_entry_opens_subgraph(self):
        chain = FilterChain()
        chain.add("crop=w=100:h=100")
        chain.add("overlay=x=0:y=0", source="movie=filename=a.png")
        chain.add("hue=s=0.0")
        assert chain.to_string() == (
            "crop=w=100:h=100[v0];movie=filename=a.png[vs0];"
            "[v0][vs0]overlay=x=0:y=0,hue=s=0.0"
        )

    def test_sourced_entry_first_uses_passthrough(self):
        chain = FilterChain(label_prefix="a", passthrough="anull")
        chain.add("amix=inputs=2", source="amovie=filename=b.mp3")
        assert chain.to_string() == "anull[a0];amovie=filename=b.mp3[as0];[a0][as0]amix=inputs=2"

    def test_two_sources_get_distinct_labels(self):
        chain = FilterChain()
        chain.add("overlay=x=1", source="movie=filename=a.png")
        chain.add("overlay=x=2", source="movie=filename=b.png")
        assert chain.to_string() == (
            "null[v0];movie=filename=a.png[vs0];[v0][vs0]overlay=x=1[v1];"
            "movie=filename=b.png[vs1];[v1][vs1]overlay=x=2"
        )


class TestCommandBuilder:
    """Tests for CommandBuilder."""

    def test_basic_command(self):
        args = CommandBuilder().input("/input.mp4").output("/output.mp4").build_args()
        assert args == ["ffmpeg", "-i", "/input.mp4", "-y", "/output.mp4"]

    def test_input_options_precede_input(self):
        builder = CommandBuilder()
        builder.input("/input.mp4", ["-ss", "2.0"])
        builder.output("/output.mp4")
        args = builder.build_args()
        assert args[:5] == ["ffmpeg", "-ss", "2.0", "-i", "/input.mp4"]

    def test_stream_copy(self):
        args = CommandBuilder().input("/in.mp4").stream_copy().output("/out.mp4").build_args()
        assert _value_after(args, "-c") == "copy"

    def test_no_overwrite(self):
        args = CommandBuilder().input("/in.mp4").overwrite(False).output("/out.mp4").build_args()
        assert "-y" not in args

    def test_build_string_quotes(self):
        builder = CommandBuilder().input("/in dir/in.mp4").output("/out.mp4")
        assert shlex.split(builder.build_string())[2] == "/in dir/in.mp4"

    def test_literal_path(self):
        assert literal_path("-weird.mp4") == "file:-weird.mp4"
        assert literal_path("a:b.mp4") == "file:a:b.mp4"
        assert literal_path("/abs/a.mp4") == "/abs/a.mp4"


class TestSerializePipeline:
    """Tests for serialize_pipeline."""

    def test_argument_order(self):
        state = (
            EditState.for_source("/videos/in.mp4", 10_000)
            .with_trim(2000, 8000)
            .add_filter(VideoFilter.of("brightness", 0.2))
            .with_speed(2.0)
            .with_compression("high")
        )
        args = serialize_pipeline(compile_edit_state(state), "/out/VID_1.mp4").to_args()

        assert args[:7] == ["ffmpeg", "-ss", "2.0", "-t", "6.0", "-i", "/videos/in.mp4"]
        assert _value_after(args, "-vf") == "eq=brightness=0.2,setpts=0.5*PTS"
        assert _value_after(args, "-af") == "atempo=2.0"
        assert _value_after(args, "-preset") == "slow"
        assert _value_after(args, "-c:v") == "libx264"
        assert _value_after(args, "-b:v") == "8000k"
        assert _value_after(args, "-c:a") == "aac"
        assert _value_after(args, "-f") == "mp4"
        assert _value_after(args, "-movflags") == "+faststart"
        assert args[-2:] == ["-y", "/out/VID_1.mp4"]
        assert args.index("-vf") < args.index("-af") < args.index("-preset") < args.index("-c:v")

    def test_trim_with_slow_motion_cuts_input(self):
        """The trim length is read from the input, before setpts stretches it."""
        state = (
            EditState.for_source("/videos/in.mp4", 10_000)
            .with_trim(2000, 8000)
            .with_speed(0.5)
        )
        pipeline = compile_edit_state(state)
        args = serialize_pipeline(pipeline, "/out/a.mp4").to_args()

        assert args[:7] == ["ffmpeg", "-ss", "2.0", "-t", "6.0", "-i", "/videos/in.mp4"]
        assert args.count("-t") == 1
        assert _value_after(args, "-vf") == "setpts=2.0*PTS"
        assert _value_after(args, "-af") == "atempo=0.5"
        assert pipeline.output_duration_ms == 12_000

    def test_trim_with_reverse_cuts_input(self):
        """Reverse only buffers the trimmed window."""
        state = (
            EditState.for_source("/videos/in.mp4", 10_000)
            .with_trim(0, 3000)
            .toggle_reverse()
        )
        args = serialize_pipeline(compile_edit_state(state), "/out/a.mp4").to_args()

        assert args[:5] == ["ffmpeg", "-t", "3.0", "-i", "/videos/in.mp4"]
        assert args.count("-t") == 1
        assert "-ss" not in args
        assert _value_after(args, "-vf") == "reverse"
        assert _value_after(args, "-af") == "areverse"

    def test_no_filters_means_no_filter_flags(self):
        state = EditState.for_source("/videos/in.mp4", 10_000)
        args = serialize_pipeline(compile_edit_state(state), "/out/a.mov").to_args()
        assert "-vf" not in args
        assert "-af" not in args
        assert "-preset" not in args

    def test_hostile_text_stays_in_its_stage(self):
        state = (
            EditState.for_source("/videos/in.mp4", 10_000)
            .add_text_overlay(TextOverlay(id="t1", text="a'b:c,d;e[f]"))
            .add_filter(VideoFilter.of("contrast", 1.5))
        )
        vf = _value_after(
            serialize_pipeline(compile_edit_state(state), "/out/a.mp4").to_args(), "-vf"
        )
        assert vf.startswith("eq=contrast=1.5,drawtext=text=")
        assert "a\\\\\\'b\\\\:c\\,d\\;e\\[f\\]" in vf
        assert ";" not in vf.replace("\\;", "")

    def test_sticker_and_mix_become_subgraphs(self):
        state = (
            EditState.for_source("/videos/in.mp4", 10_000)
            .add_sticker_overlay(StickerOverlay(id="s1", image_location="/img/a.png"))
            .add_audio_track(AudioTrack(id="m1", source_location="/music/b.mp3"))
        )
        args = serialize_pipeline(compile_edit_state(state), "/out/a.mp4").to_args()
        assert _value_after(args, "-vf") == (
            "null[v0];movie=filename=/img/a.png[vs0];"
            "[v0][vs0]overlay=x=0:y=0:enable='between(t,0.0,10.0)'"
        )
        assert _value_after(args, "-af").startswith(
            "anull[a0];amovie=filename=/music/b.mp3,atrim=duration=10.0[as0];[a0][as0]amix="
        )

    def test_mov_container(self):
        state = EditState.for_source("/videos/in.mp4", 10_000).with_output_format("mov")
        args = serialize_pipeline(compile_edit_state(state), "/out/a.mov").to_args()
        assert _value_after(args, "-f") == "mov"
