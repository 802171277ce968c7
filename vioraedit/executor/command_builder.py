"""FFMPEG command builder and pipeline serializer."""

import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from ..compiler.pipeline import PipelineDescription, Stage


def literal_path(path: str | Path) -> str:
    """Make a local path safe to pass as an ffmpeg input/output argument.

    A leading ``-`` would be read as an option and a relative path with a
    ``:`` as a protocol prefix, so both get the explicit ``file:`` protocol.
    """
    path_str = str(path)
    if path_str.startswith("-") or (":" in path_str and not Path(path_str).is_absolute()):
        if not path_str.startswith("file:"):
            return f"file:{path_str}"
    return path_str


@dataclass
class FilterChain:
    """Filter expressions for one media dimension, kept in insertion order.

    Each entry is ``(expression, source)``. Entries without a source are
    joined with ``,``. An entry with a source closes the running chain
    into a label, feeds the source into a second label, and continues
    from ``[main][source]expression``.
    """
    entries: list[tuple[str, Optional[str]]] = field(default_factory=list)
    label_prefix: str = "v"
    passthrough: str = "null"

    def add(self, expression: str, source: Optional[str] = None) -> "FilterChain":
        """Add a filter expression to the chain."""
        self.entries.append((expression, source))
        return self

    def add_stage(self, stage: Stage) -> "FilterChain":
        if stage.is_filter:
            self.entries.append((stage.expression, stage.source))
        return self

    def __len__(self) -> int:
        return len(self.entries)

    def to_string(self) -> str:
        """Convert filter chain to FFMPEG filtergraph string."""
        if not self.entries:
            return ""

        segments = []
        pending: list[str] = []
        lead = ""
        n = 0
        for expression, source in self.entries:
            if source is None:
                pending.append(expression)
                continue
            main = f"{self.label_prefix}{n}"
            src = f"{self.label_prefix}s{n}"
            n += 1
            segments.append(f"{lead}{','.join(pending or [self.passthrough])}[{main}]")
            segments.append(f"{source}[{src}]")
            lead = f"[{main}][{src}]"
            pending = [expression]

        segments.append(lead + ",".join(pending))
        return ";".join(segments)


@dataclass
class FFMPEGCommand:
    """Represents a complete FFMPEG command."""
    inputs: list[str] = field(default_factory=list)
    outputs: list[str] = field(default_factory=list)
    input_options: dict[str, list[str]] = field(default_factory=dict)
    output_options: list[str] = field(default_factory=list)
    video_filters: FilterChain = field(default_factory=FilterChain)
    audio_filters: FilterChain = field(
        default_factory=lambda: FilterChain(label_prefix="a", passthrough="anull")
    )
    overwrite: bool = True

    @property
    def output_path(self) -> Optional[str]:
        return self.outputs[0] if self.outputs else None

    def to_args(self) -> list[str]:
        """Convert command to list of arguments for subprocess."""
        args = ["ffmpeg"]

        # Inputs with their options
        for input_path in self.inputs:
            if input_path in self.input_options:
                args.extend(self.input_options[input_path])
            args.extend(["-i", literal_path(input_path)])

        vf = self.video_filters.to_string()
        if vf:
            args.extend(["-vf", vf])

        af = self.audio_filters.to_string()
        if af:
            args.extend(["-af", af])

        args.extend(self.output_options)

        if self.overwrite:
            args.append("-y")

        args.extend(literal_path(out) for out in self.outputs)

        return args

    def to_string(self) -> str:
        """Convert command to shell string."""
        return " ".join(shlex.quote(arg) for arg in self.to_args())


class CommandBuilder:
    """Builder for constructing FFMPEG commands."""

    def __init__(self):
        self._command = FFMPEGCommand()

    def input(
        self,
        path: str | Path,
        options: Optional[list[str]] = None,
    ) -> "CommandBuilder":
        """Add an input file."""
        path_str = str(path)
        self._command.inputs.append(path_str)
        if options:
            self._command.input_options[path_str] = list(options)
        return self

    def output(self, path: str | Path) -> "CommandBuilder":
        """Set output file."""
        self._command.outputs.append(str(path))
        return self

    def output_options(self, *options: str) -> "CommandBuilder":
        """Add output options."""
        self._command.output_options.extend(options)
        return self

    def vf(self, *filters: str | Stage) -> "CommandBuilder":
        """Add video filters."""
        for f in filters:
            if isinstance(f, str):
                self._command.video_filters.add(f)
            else:
                self._command.video_filters.add_stage(f)
        return self

    def af(self, *filters: str | Stage) -> "CommandBuilder":
        """Add audio filters."""
        for f in filters:
            if isinstance(f, str):
                self._command.audio_filters.add(f)
            else:
                self._command.audio_filters.add_stage(f)
        return self

    def stream_copy(self) -> "CommandBuilder":
        """Copy all streams without re-encoding."""
        self._command.output_options.extend(["-c", "copy"])
        return self

    def overwrite(self, value: bool = True) -> "CommandBuilder":
        """Set overwrite flag."""
        self._command.overwrite = value
        return self

    def build(self) -> FFMPEGCommand:
        """Build and return the command."""
        return self._command

    def build_args(self) -> list[str]:
        """Build and return command as argument list."""
        return self._command.to_args()

    def build_string(self) -> str:
        """Build and return command as shell string."""
        return self._command.to_string()


def serialize_pipeline(
    pipeline: PipelineDescription,
    output_location: str | Path,
) -> FFMPEGCommand:
    """Turn a compiled pipeline into one ffmpeg invocation.

    Stage order is preserved exactly: the video stages' expressions form
    ``-vf``, the audio stages' form ``-af``, and each stage's input/output
    options are emitted in stage order. Nothing is reordered or merged.
    """
    builder = CommandBuilder()

    input_opts = [opt for stage in pipeline.stages for opt in stage.input_options]
    builder.input(pipeline.input_location, input_opts or None)

    for stage in pipeline.video_stages:
        builder.vf(stage)
    for stage in pipeline.audio_stages:
        builder.af(stage)

    for stage in pipeline.stages:
        builder.output_options(*stage.output_options)
    builder.output_options(*pipeline.encoding.to_ffmpeg_args())

    builder.output(output_location)
    return builder.build()
