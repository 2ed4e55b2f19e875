import argparse
import logging

import numpy as np
import taichi as ti

from skylut.parameters import PlanetConfig, AtmosphereProfile, LutConfig, load_config
from skylut.pipeline import LutPipeline


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Precompute transmittance and multiple scattering LUTs.")
    parser.add_argument("--config", help="JSON file with planet, atmosphere and lut sections")
    parser.add_argument("--output-dir", default="LUT", help="where the .dat tables are written")
    parser.add_argument("--arch", default="gpu", choices=["cpu", "gpu", "cuda", "vulkan", "metal", "opengl"])
    parser.add_argument("--preview", action="store_true", help="also write PNG previews")
    parser.add_argument("--verbose", action="store_true")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(asctime)s %(name)s %(levelname)s %(message)s")

    if args.config:
        planet, profile, lut = load_config(args.config)
    else:
        planet, profile, lut = PlanetConfig(), AtmosphereProfile.earth_default(), LutConfig()

    ti.init(arch=getattr(ti, args.arch))

    pipeline = LutPipeline(planet, profile, lut)
    tables = pipeline.run()
    for path in pipeline.save(tables, args.output_dir, preview=args.preview):
        print(f"wrote {path}")

    ms = tables["multiple_scattering"]
    print(f"multiple scattering range [{np.min(ms):.4g}, {np.max(ms):.4g}]")
    print("Done")


if __name__ == "__main__":
    main()
