"""
GeoJSON → PMTiles conversion through tippecanoe.

The conversion runs as an external process; its exit code decides success
and its output is kept for the log. Converters report failures as a
`ConversionResult` instead of raising.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from pmcharts.utils.log import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ConversionResult:
    """
    Outcome of one conversion process.

    `spawn_error` is set when the process could not be started at all, in
    which case `exit_code` is None.
    """
    exit_code: int | None
    stdout: str = ""
    stderr: str = ""
    spawn_error: str | None = None

    @property
    def ok(self) -> bool:
        return self.spawn_error is None and self.exit_code == 0

    def describe(self) -> str:
        if self.spawn_error is not None:
            return f"Failed to spawn conversion process: {self.spawn_error}"
        if self.exit_code == 0:
            return "Conversion succeeded"
        msg = f"Conversion failed with exit code {self.exit_code}"
        if self.stderr:
            msg += f": {self.stderr.strip()}"
        return msg


async def run_process(args: list[str]) -> ConversionResult:
    """
    Run `args`, collecting stdout and stderr in full, and wait for exit.
    """
    try:
        proc = await asyncio.create_subprocess_exec(
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as exc:
        return ConversionResult(exit_code=None, spawn_error=str(exc))

    out, err = await proc.communicate()
    return ConversionResult(
        exit_code=proc.returncode,
        stdout=out.decode("utf-8", errors="replace"),
        stderr=err.decode("utf-8", errors="replace"),
    )


class TileConverter(ABC):
    """
    Converts `chart_dir/input_name` into `chart_dir/output_name` at a single
    target zoom level.
    """

    @abstractmethod
    def command(self, chart_dir: Path, input_name: str, output_name: str, max_zoom: int) -> list[str]:
        ...

    async def convert(self, chart_dir: Path, input_name: str, output_name: str, max_zoom: int) -> ConversionResult:
        args = self.command(chart_dir, input_name, output_name, max_zoom)
        logger.info("Converting %s to %s", input_name, output_name)
        logger.debug("Running %s", " ".join(args))
        result = await run_process(args)
        if result.ok:
            logger.info("Successfully converted to PMTiles: %s", output_name)
            if result.stdout:
                logger.debug("Converter stdout: %s", result.stdout)
        else:
            logger.error(result.describe())
        return result


class DockerTippecanoeConverter(TileConverter):
    """
    Run tippecanoe from a container with the chart directory mounted at /data.
    """
    def __init__(self, image: str = "versatiles/versatiles-tippecanoe:latest", docker_bin: str = "docker") -> None:
        self.image = image
        self.docker_bin = docker_bin

    def command(self, chart_dir: Path, input_name: str, output_name: str, max_zoom: int) -> list[str]:
        return [
            self.docker_bin,
            "run",
            "-i",
            "--rm",
            "-v",
            f"{chart_dir}:/data",
            self.image,
            "-o",
            f"/data/{output_name}",
            "-f",
            f"/data/{input_name}",
            f"-z{max_zoom}",
        ]


class LocalTippecanoeConverter(TileConverter):
    """
    Run a tippecanoe binary installed on the host.
    """
    def __init__(self, tippecanoe_bin: str = "tippecanoe") -> None:
        self.tippecanoe_bin = tippecanoe_bin

    def command(self, chart_dir: Path, input_name: str, output_name: str, max_zoom: int) -> list[str]:
        return [
            self.tippecanoe_bin,
            "-o",
            str(chart_dir / output_name),
            "-f",
            str(chart_dir / input_name),
            f"-z{max_zoom}",
        ]


def make_converter(kind: str, docker_image: str, tippecanoe_bin: str) -> TileConverter:
    match kind:
        case "docker":
            return DockerTippecanoeConverter(docker_image)
        case "local":
            return LocalTippecanoeConverter(tippecanoe_bin)
        case _:
            raise ValueError(f"Unknown converter: {kind!r}")
