import logging

from retinaforge import moving_bar_stimulus


def main():
    logging.basicConfig(level=logging.INFO)

    # Small, fast runs of each mosaic variant
    for variant in ("linear", "biophys", "hex"):
        result = moving_bar_stimulus(
            row=48, col=48, bar_width=6, fov=0.8, os=variant, show_progress=True
        )
        summary = result.to_dict()
        mosaic = summary["cone_mosaic"]
        print(f"[{variant}] frames: {summary['n_frames']}, sweep {summary['sweep_frames']}")
        print(f"[{variant}] cone mosaic: {mosaic['rows']}x{mosaic['cols']} ({mosaic['mosaic_type']})")
        print(f"[{variant}] mean absorptions per frame: "
              f"{result.absorptions.mean(dim=(0, 1))[:3].tolist()} ...")
        print(f"[{variant}] mean photocurrent: {summary['mean_current']:.3f} pA")

        result.save(f"results/moving_bar_{variant}.pt")


if __name__ == "__main__":
    main()
