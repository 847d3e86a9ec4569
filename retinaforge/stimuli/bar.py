"""Moving-bar stimulus and its cone-mosaic response.

A bright vertical bar on a mid-gray background sweeps left to right, one
column per frame, preceded and followed by uniform gray frames. Every frame
is rendered on a calibrated display, passed through the eye's optics and
appended to a cone mosaic. Photocurrent is derived once, after the last
frame.

Example:
    >>> from retinaforge.stimuli import moving_bar_stimulus
    >>> result = moving_bar_stimulus(row=16, col=16, bar_width=4, start_frames=3, end_frames=2)
    >>> result.n_frames
    17
    >>> result.scene_rgb.shape
    torch.Size([16, 16, 17, 3])
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple

import torch
from tqdm import tqdm

from retinaforge.config.schema import BarStimulusParams
from retinaforge.display.display import Display, create_display
from retinaforge.exceptions import ConfigurationError, StimulusGenerationError
from retinaforge.mosaic.base import PhotocurrentResult, ReceptorArray
from retinaforge.mosaic.density import cone_aperture_size, cone_density, eccentricity_to_mm
from retinaforge.mosaic.factory import create_cone_mosaic
from retinaforge.optics.optics import OpticalImage, Optics, create_optics
from retinaforge.scene.scene import Scene, scene_from_rgb
from retinaforge.session import session_override
from retinaforge.stimuli.timeline import BarSpan, FramePhase, FrameTimeline
from retinaforge.utils.io import save_results

logger = logging.getLogger(__name__)

BACKGROUND_LEVEL = 0.5
BAR_LEVEL = 1.0
# Background rate handed to adapting outer segments, in units of the mean rate
BACKGROUND_RATE_FACTOR = 10.0


def bar_frame(
    rows: int,
    cols: int,
    span: BarSpan,
    background: float = BACKGROUND_LEVEL,
    intensity: float = BAR_LEVEL,
) -> torch.Tensor:
    """RGB frame ``[rows, cols, 3]`` with the columns of ``span`` lit.

    Raises:
        ValueError: If the span leaves the frame.
    """
    if span.start < 1 or span.end > cols:
        raise ValueError(f"bar span {span.start}..{span.end} outside 1..{cols}")
    frame = torch.full((rows, cols, 3), background, dtype=torch.float32)
    frame[:, span.to_slice(), :] = intensity
    return frame


@dataclass
class Toolbox:
    """Collaborators used by :class:`MovingBarStimulus`.

    Attributes:
        display_provider: ``name -> Display``.
        scene_builder: ``(rgb, color_space, mean_luminance, display) -> Scene``.
        optics_factory: ``(kind, device=...) -> Optics``.
        mosaic_factory: ``(variant, seed=..., device=...) -> ReceptorArray``.
        density_model: ``(ecc_mm, angle_deg, side) -> cones/mm²``.
    """

    display_provider: Callable[..., Display] = create_display
    scene_builder: Callable[..., Scene] = scene_from_rgb
    optics_factory: Callable[..., Optics] = create_optics
    mosaic_factory: Callable[..., ReceptorArray] = create_cone_mosaic
    density_model: Callable[..., float] = cone_density


@dataclass
class BarStimulusResult:
    """Everything produced by one moving-bar run.

    ``params`` alone is enough to regenerate an equivalent result.

    Attributes:
        params: Validated parameters of the run.
        display: Display calibration used.
        scene: Last rendered sweep scene.
        scene_rgb: Raw movie ``[rows, cols, frames, 3]``. Only sweep frames
            are stored; pre-roll and post-roll slots stay zero.
        oi: Optical image of the last frame.
        mean_oi: Optical image shared by all gray frames.
        cone_mosaic: Mosaic holding the accumulated absorptions.
        baseline_absorptions: Noise-free absorptions of the first sweep frame.
        photocurrent: Photocurrent derived after the last frame.
        timeline: Frame timeline of the run.
    """

    params: BarStimulusParams
    display: Display
    scene: Scene
    scene_rgb: torch.Tensor
    oi: OpticalImage
    mean_oi: OpticalImage
    cone_mosaic: ReceptorArray
    baseline_absorptions: torch.Tensor
    photocurrent: PhotocurrentResult
    timeline: FrameTimeline
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def n_frames(self) -> int:
        return int(self.scene_rgb.shape[2])

    @property
    def absorptions(self) -> torch.Tensor:
        return self.cone_mosaic.absorptions

    def to_dict(self) -> Dict[str, Any]:
        """Summary of the run (parameters and sizes, no arrays)."""
        return {
            "params": self.params.to_dict(),
            "display": self.display.name,
            "scene_size": list(self.scene.size),
            "n_frames": self.n_frames,
            "sweep_frames": [self.timeline.first_sweep_frame, self.timeline.last_sweep_frame],
            "cone_mosaic": self.cone_mosaic.to_dict(),
            "mean_current": self.photocurrent.mean_current,
            "background_rate": self.photocurrent.background_rate,
            **self.metadata,
        }

    def save(self, path: str | Path, save_format: str = "pytorch") -> Path:
        """Save the movie, absorptions and photocurrent with a summary."""
        data = {
            "summary": self.to_dict(),
            "scene_rgb": self.scene_rgb,
            "absorptions": self.absorptions,
            "baseline_absorptions": self.baseline_absorptions,
            "photocurrent": self.photocurrent.current,
            "time_step": self.photocurrent.time_step,
        }
        return save_results(data, path, save_format)


class MovingBarStimulus:
    """Sequencer of the moving-bar stimulus.

    Args:
        params: Stimulus parameters.
        toolbox: Collaborators; defaults to the built-in models.
        device: Device for optics and mosaic tensors.
    """

    def __init__(
        self,
        params: Optional[BarStimulusParams] = None,
        toolbox: Optional[Toolbox] = None,
        device: torch.device | str = "cpu",
    ) -> None:
        self.params = params if params is not None else BarStimulusParams()
        self.toolbox = toolbox if toolbox is not None else Toolbox()
        self.device = device

    def run(self, show_progress: bool = False) -> BarStimulusResult:
        """Generate the stimulus and the mosaic response.

        The session wait bar is disabled while collaborators run and
        restored afterwards, whether or not the run succeeds.

        Raises:
            ConfigurationError: If the parameters are invalid.
            StimulusGenerationError: If any collaborator fails.
        """
        params = self.params.validate()
        with session_override(wait_bar=False):
            try:
                return self._sequence(params, show_progress)
            except ConfigurationError:
                raise
            except Exception as exc:
                raise StimulusGenerationError(
                    f"Moving-bar stimulus generation failed: {exc}"
                ) from exc

    def _render(self, rgb: torch.Tensor, display: Display) -> Scene:
        scene = self.toolbox.scene_builder(rgb, "rgb", self.params.mean_luminance, display)
        scene.hfov = self.params.fov
        return scene

    def _sequence(self, params: BarStimulusParams, show_progress: bool) -> BarStimulusResult:
        tb = self.toolbox
        display = tb.display_provider(params.display)
        optics = tb.optics_factory("wvf human", device=self.device)
        focal_length = optics.focal_length

        ecc_mm = eccentricity_to_mm(params.radius, focal_length)
        density = tb.density_model(ecc_mm, params.theta, params.side)
        cone_size = cone_aperture_size(density)
        mosaic = tb.mosaic_factory(params.os, seed=params.seed, device=self.device)

        mean_frame = torch.full((params.row, params.col, 3), BACKGROUND_LEVEL, dtype=torch.float32)
        mean_scene = self._render(mean_frame, display)
        mean_oi = optics.compute(mean_scene)

        mosaic.configure_geometry(
            pigment_size=(cone_size, cone_size),
            fov=(mean_scene.hfov, mean_scene.vfov),
            scene_distance=mean_scene.distance,
            focal_length=focal_length,
        )

        timeline = FrameTimeline.from_params(params, scene_cols=mean_scene.cols)
        rows, cols = mean_scene.size
        n_frames = len(timeline)
        logger.info(
            "Computing cone absorptions: %d frames (%d sweep), mosaic %s",
            n_frames, timeline.stim_frames, params.os,
        )

        def render_sweep(t: int) -> Tuple[Scene, OpticalImage]:
            sweep_scene = self._render(bar_frame(rows, cols, timeline.bar_span(t)), display)
            return sweep_scene, optics.compute(sweep_scene)

        # Allocate the movie and prime the mosaic on the first sweep frame
        scene_rgb = torch.zeros((rows, cols, n_frames, 3), dtype=torch.float32)
        first_sweep = timeline.first_sweep_frame
        first_scene, first_oi = render_sweep(first_sweep)
        baseline = mosaic.compute_noise_free(first_oi)

        scene = mean_scene
        oi = mean_oi
        frames = tqdm(
            timeline,
            total=n_frames,
            desc="Stimulus movie",
            unit="frame",
            disable=not show_progress,
        )
        for t, phase in frames:
            if phase is FramePhase.SWEEP:
                if t == first_sweep:
                    scene, oi = first_scene, first_oi
                else:
                    scene, oi = render_sweep(t)
                scene_rgb[:, :, t - 1, :] = scene.rgb
            else:
                oi = mean_oi
            mosaic.accumulate(oi, em_path=(0, 0))

        if mosaic.requires_background_rate:
            background_rate = BACKGROUND_RATE_FACTOR * mosaic.mean_absorption_rate()
            logger.debug("Background absorption rate %.1f R*/s", background_rate)
            photocurrent = mosaic.finalize(background_rate=background_rate)
        else:
            photocurrent = mosaic.finalize()

        return BarStimulusResult(
            params=params,
            display=display,
            scene=scene,
            scene_rgb=scene_rgb,
            oi=oi,
            mean_oi=mean_oi,
            cone_mosaic=mosaic,
            baseline_absorptions=baseline,
            photocurrent=photocurrent,
            timeline=timeline,
            metadata={"cone_density": float(density), "cone_size": cone_size},
        )


def moving_bar_stimulus(
    params: Optional[BarStimulusParams] = None,
    show_progress: bool = False,
    toolbox: Optional[Toolbox] = None,
    **overrides: Any,
) -> BarStimulusResult:
    """Run the moving-bar sequencer.

    Args:
        params: Base parameters (defaults when ``None``).
        show_progress: Show a per-frame progress bar.
        toolbox: Collaborators; defaults to the built-in models.
        **overrides: Field overrides applied to ``params``.
    """
    base = params if params is not None else BarStimulusParams()
    if overrides:
        try:
            base = base.replace(**overrides)
        except TypeError as exc:
            raise ConfigurationError(str(exc)) from exc
    return MovingBarStimulus(base, toolbox=toolbox).run(show_progress=show_progress)
