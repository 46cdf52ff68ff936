from __future__ import annotations

import argparse
import sys
from typing import Sequence

from galapagotchi.content.storage import JsonStorage
from galapagotchi.genetics.genome import fresh_genome
from galapagotchi.island.hexalot import HEXALOT_RADIUS
from galapagotchi.island.island import DEFAULT_ISLAND_RADIUS, Island
from galapagotchi.island.spot import ORIGIN, Surface
from galapagotchi.sim.hash import genome_hash
from galapagotchi.sim.rng import RNG_GENESIS_STREAM_NAME, stream


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="galapagotchi-new-island",
        description=(
            "Author an all-land disk island with a claimed seed hexalot at the origin "
            "and write it into a storage directory."
        ),
    )
    parser.add_argument("storage_dir", help="Storage root holding islands/, genomes/ and journeys/")
    parser.add_argument("name", help="Island name")
    parser.add_argument(
        "--radius",
        type=int,
        default=DEFAULT_ISLAND_RADIUS,
        help=f"Island radius in spots (default: {DEFAULT_ISLAND_RADIUS})",
    )
    parser.add_argument("--seed", type=int, default=0, help="Seed for the genesis genome (default: 0)")
    parser.add_argument("--force", action="store_true", help="Overwrite the island if it already exists")
    return parser


def build_seed_island(name: str, radius: int) -> Island:
    if radius < HEXALOT_RADIUS:
        raise ValueError(f"radius must be >= {HEXALOT_RADIUS} to hold the seed hexalot")
    island = Island(name, radius)
    for spot in island.spots:
        spot.set_surface(Surface.LAND)
    island.refresh_structure()
    origin = island.spot_at(ORIGIN)
    if origin is None or island.create_hexalot(origin) is None:
        raise ValueError("seed hexalot could not be created at the origin")
    return island


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    storage = JsonStorage(args.storage_dir)

    try:
        island_path = storage.island_path(args.name)
        if island_path.exists() and not args.force:
            raise ValueError(f"output exists: {island_path} (use --force to overwrite)")

        island = build_seed_island(args.name, args.radius)
        home = island.hexalots[0]
        genome = fresh_genome(stream(args.seed, RNG_GENESIS_STREAM_NAME))
        storage.set_genome(home, genome.to_data())
        storage.save_island(island)

        print(
            "ok "
            f"island_path={island_path} "
            f"radius={island.radius} "
            f"spot_count={len(island.spots)} "
            f"home={home.id} "
            f"genome_hash={genome_hash(genome.to_data())}"
        )
    except Exception as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
