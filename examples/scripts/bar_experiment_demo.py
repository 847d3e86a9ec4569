import torch
from retinaforge import BarResponseExperiment, RetinaForgeConfig
from retinaforge.experiments import create_inner_retina


def main():
    config = RetinaForgeConfig.from_file("examples/configs/bar_experiment.yml")

    # The experiment reloads the inner retina from disk for every block
    create_inner_retina(config, config.experiment.inner_retina_path)
    summary = BarResponseExperiment(config).run(show_progress=True)

    data = torch.load(summary["output_paths"][0], weights_only=True)
    spikes = data["spikes"]
    print(f"Stimulus: {tuple(data['stimulus'].shape)}")
    print(f"{data['cell_type']} spikes: {tuple(spikes.shape)}, total {int(spikes.sum())}")

    # Spike count per frame across the mosaic
    per_frame = spikes.reshape(-1, spikes.shape[-1]).sum(dim=0)
    print(f"Peak response at frame {int(per_frame.argmax()) + 1}")


if __name__ == "__main__":
    main()
