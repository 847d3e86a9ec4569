"""Stimulus/response experiment with a moving bar.

The experiment generates a moving-bar stimulus, hands its raw RGB movie to
a pass-through (``displayrgb``) outer segment, and for each block reloads
an inner-retina model from disk, computes its spiking response and saves
the stimulus/spike pair.

Example:
    >>> config = RetinaForgeConfig.from_file("configs/bar_experiment.yml")
    >>> experiment = BarResponseExperiment(config)
    >>> summary = experiment.run()
    >>> summary["output_paths"]
    ['results/bar_on.pt']
"""

from __future__ import annotations

import time
from pathlib import Path
from typing import Any, Dict, List, Optional

import torch

from retinaforge.config.schema import RetinaForgeConfig
from retinaforge.innerretina.inner_retina import InnerRetina
from retinaforge.outersegment.identity import IdentityOuterSegment
from retinaforge.stimuli.bar import BarStimulusResult, MovingBarStimulus, Toolbox
from retinaforge.utils.io import SUFFIXES, save_results


class BarResponseExperiment:
    """Drives an inner retina with a moving-bar movie.

    Attributes:
        config: Full configuration.
        toolbox: Collaborators used to generate the stimulus.
    """

    def __init__(self, config: RetinaForgeConfig, toolbox: Optional[Toolbox] = None):
        """Validate the stimulus and experiment sections of ``config``.

        Raises:
            ConfigurationError: If either section is invalid.
        """
        self.config = config
        self.toolbox = toolbox
        config.stimulus.validate()
        config.experiment.validate()

    def block_output_path(self, block: int) -> Path:
        """Output file of ``block`` (1-based).

        A missing suffix is filled in from the save format, and ``_block{n}``
        is appended to the stem when there is more than one block.
        """
        exp = self.config.experiment
        path = Path(exp.output_path)
        if not path.suffix:
            path = path.with_suffix(SUFFIXES[exp.save_format])
        if exp.n_blocks > 1:
            path = path.with_name(f"{path.stem}_block{block}{path.suffix}")
        return path

    def build_outer_segment(self, stimulus: BarStimulusResult) -> IdentityOuterSegment:
        """Wrap the stimulus movie in a ``displayrgb`` outer segment.

        The patch is as wide as the cone mosaic.
        """
        outer_segment = IdentityOuterSegment(
            time_step=self.config.experiment.time_step,
            patch_size=stimulus.cone_mosaic.width,
        )
        outer_segment.set_rgb_data(stimulus.scene_rgb)
        return outer_segment

    def patch_height(self, stimulus: BarStimulusResult) -> float:
        """Patch height in metres, from the mosaic width and scene aspect ratio."""
        rows, cols = stimulus.scene.size
        return rows / cols * stimulus.cone_mosaic.width

    def run_block(
        self,
        block: int,
        stimulus: BarStimulusResult,
        outer_segment: IdentityOuterSegment,
    ) -> Path:
        """Reload the inner retina, compute its response and save one block.

        Seeded mosaics draw block ``n`` with seeds offset by ``n - 1``, so
        blocks are distinct replicates and a rerun of a block repeats it.
        """
        exp = self.config.experiment
        inner_retina = InnerRetina.load(exp.inner_retina_path)
        inner_retina.reseed(block - 1)
        inner_retina.compute(outer_segment)
        mosaic = inner_retina.mosaics[0]
        response = mosaic.response_psth()

        spikes = response["spikes"].sum(dim=0).clamp(max=255).to(torch.uint8)
        data = {
            "stimulus": stimulus.scene_rgb[..., 0].clone(),
            "spikes": spikes,
            "psth": response["psth"],
            "time_step": outer_segment.time_step,
            "patch_size": outer_segment.patch_size,
            "patch_height": self.patch_height(stimulus),
            "cell_type": mosaic.cell_type,
            "block": block,
            "params": stimulus.params.to_dict(),
        }
        return save_results(data, self.block_output_path(block), exp.save_format)

    def run(self, show_progress: bool = False) -> Dict[str, Any]:
        """Run every block.

        Returns:
            Dictionary with:
                - 'output_paths': Saved files, one per block
                - 'n_blocks': Number of blocks
                - 'n_frames': Stimulus length
                - 'duration_seconds': Total execution time
        """
        exp = self.config.experiment
        print(f"Starting bar response experiment")
        print(f"Inner retina: {exp.inner_retina_path}")
        print(f"Blocks: {exp.n_blocks}")
        print(f"Save format: {exp.save_format}")
        start_time = time.time()

        stimulus = MovingBarStimulus(self.config.stimulus, toolbox=self.toolbox).run(
            show_progress=show_progress
        )
        outer_segment = self.build_outer_segment(stimulus)
        print(f"Stimulus: {stimulus.n_frames} frames, patch {outer_segment.patch_size * 1e6:.1f} um")

        output_paths: List[str] = []
        for block in range(1, exp.n_blocks + 1):
            print(f"[{block}/{exp.n_blocks}] Computing block {block}...")
            path = self.run_block(block, stimulus, outer_segment)
            output_paths.append(str(path))

        duration = time.time() - start_time
        print(f"\nExperiment completed!")
        print(f"Duration: {duration:.2f} seconds")
        for path in output_paths:
            print(f"Output: {path}")

        return {
            "output_paths": output_paths,
            "n_blocks": exp.n_blocks,
            "n_frames": stimulus.n_frames,
            "duration_seconds": duration,
        }


def create_inner_retina(config: RetinaForgeConfig, path: str | Path) -> Path:
    """Build the configured inner retina and save it to ``path``."""
    retina = InnerRetina.from_config(config.inner_retina)
    return retina.save(path)
