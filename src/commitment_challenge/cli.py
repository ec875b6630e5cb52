"""
commitment_challenge.cli — Command-line interface
==================================================

Runs the lifecycle scheduler over an in-memory store, optionally seeded
with games from a JSON file.

Usage:
    python -m commitment_challenge --demo --seed games.json --once
    python -m commitment_challenge --config engine.json --seed games.json

Demo mode (offline DemoVerifier instead of Anthropic) can be enabled via:
    1. CLI flag: --demo
    2. Config key: demo_mode: true
    3. Environment variable: DEMO_MODE=true

Seed file format:
    {
      "games": [
        {
          "game": { ...CreateGameCommand fields... },
          "players": [ { ...JoinGameCommand fields... }, ... ]
        }
      ]
    }
"""

import argparse
import json
import logging
import os
import signal
import sys
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

from .commands import CreateGameCommand, JoinGameCommand, parse_command
from .config import EngineConfig, load_config
from .demo_verifier import DemoVerifier
from .verifier import CheckInVerifier
from ._engine.lifecycle import GameLifecycleService
from ._scheduler.scheduler import LifecycleScheduler
from ._shared.logging_config import setup_logging
from ._shared.money import format_cents

logger = logging.getLogger("commitment_challenge.cli")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Commitment challenge engine - run the lifecycle scheduler",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m commitment_challenge --demo --seed games.json --once
  python -m commitment_challenge --config engine.json --seed games.json
  DEMO_MODE=true python -m commitment_challenge --seed games.json
        """,
    )

    parser.add_argument(
        "--config",
        type=str,
        help="Path to JSON config file",
    )

    parser.add_argument(
        "--seed",
        type=str,
        help="Path to JSON file with games (and players) to create at startup",
    )

    parser.add_argument(
        "--demo",
        action="store_true",
        help="Verify AI check-ins with the offline DemoVerifier",
    )

    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single scheduler pass, print game summaries and exit",
    )

    return parser.parse_args(argv)


def get_verifier(args: argparse.Namespace, config: EngineConfig) -> Optional[CheckInVerifier]:
    """Get the AI verifier for the selected mode, or None if unavailable."""
    if args.demo or config.demo_mode:
        return DemoVerifier()

    if not os.environ.get("ANTHROPIC_API_KEY"):
        print("Error: ANTHROPIC_API_KEY is not set.", file=sys.stderr)
        print("Set it in the environment or a .env file, or use --demo.", file=sys.stderr)
        return None

    from .anthropic_verifier import AnthropicVerifier
    return AnthropicVerifier(model=config.ai_model, max_tokens=config.ai_max_tokens)


def seed_games(service: GameLifecycleService, seed_path: str) -> List[str]:
    """
    Create the games (and join the players) listed in a seed file.

    Invalid entries are logged and skipped. Returns the created game ids.
    """
    with open(Path(seed_path), encoding="utf-8") as f:
        seed: Dict[str, Any] = json.load(f)

    created: List[str] = []
    for index, entry in enumerate(seed.get("games", []), start=1):
        parsed = parse_command(CreateGameCommand, entry.get("game", {}))
        if not parsed.ok:
            logger.error(f"Seed game #{index} is invalid: {parsed.error}")
            continue
        result = service.create_game(parsed.value)
        if not result.ok:
            logger.error(f"Seed game #{index} was rejected: {result.error}")
            continue

        game = result.value
        created.append(game.id)
        for raw_player in entry.get("players", []):
            player_cmd = parse_command(JoinGameCommand, raw_player)
            joined = (
                service.join_game(game.id, player_cmd.value) if player_cmd.ok else player_cmd
            )
            if not joined.ok:
                logger.error(f"Seed player for {game.title!r} skipped: {joined.error}")
    return created


def print_summaries(service: GameLifecycleService, game_ids: List[str]) -> None:
    for game_id in game_ids:
        summary = service.get_game_summary(game_id).unwrap()
        print(
            f"{summary.title}: {summary.state.value} | "
            f"players {summary.players_count} | "
            f"pool {format_cents(summary.total_pool)} | "
            f"cashouts {format_cents(summary.total_cashouts)} | "
            f"bonus {format_cents(summary.bonus_pool)}"
        )


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    args = parse_args(argv)
    try:
        config = load_config(args.config)
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    setup_logging(log_file_path=config.log_file, level=config.log_level_value)

    verifier = get_verifier(args, config)
    if verifier is None:
        return 1

    service = GameLifecycleService(verifier=verifier, config=config)
    scheduler = LifecycleScheduler(service)

    game_ids: List[str] = []
    if args.seed:
        try:
            game_ids = seed_games(service, args.seed)
        except (OSError, ValueError) as e:
            print(f"Error: could not read seed file: {e}", file=sys.stderr)
            return 1
        logger.info(f"Seeded {len(game_ids)} game(s)")

    if args.once:
        scheduler.run_once()
        print_summaries(service, game_ids)
        return 0

    stop = threading.Event()

    def _signal_handler(sig, frame):
        logger.info("Shutting down gracefully...")
        stop.set()
    signal.signal(signal.SIGINT, _signal_handler)

    scheduler.start()
    while not stop.wait(1.0):
        pass
    scheduler.stop()
    print_summaries(service, game_ids)
    return 0
