#!/usr/bin/env python3
"""
virtual-clock: Controllable process clock

Command-line front end for the virtual clock. Each invocation restores the
persisted calibration, so successive commands share one virtual timeline:

    virtual-clock set-time 2030-01-01T09:00:00Z
    virtual-clock set-speed 60
    virtual-clock watch            # refreshes the readout every second
    virtual-clock now --iso

Usage:
    # Use a specific config file
    virtual-clock --config /etc/virtual-clock/config.toml status

    # Serve the clock over HTTP
    virtual-clock serve --port 8080
"""

import argparse
import copy
import json
import logging
import sys
import time
from pathlib import Path
from typing import Any, Dict, Optional
import toml

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger('virtual-clock')

from .display import (
    clamp_speed_input,
    format_clock,
    format_date,
    format_speed,
    format_status_bar,
    status_snapshot,
)
from .engine.virtual_time_engine import VirtualTimeEngine
from .storage.backends import FileStorage
from .storage.state_store import StateStore, DEFAULT_KEY

DEFAULT_CONFIG: Dict[str, Any] = {
    'storage': {
        'path': '~/.local/state/virtual-clock/state.json',
        'key': DEFAULT_KEY,
    },
    'clock': {
        'poll_interval': 1.0,
    },
    'server': {
        'port': 8080,
        'bind_address': '127.0.0.1',
    },
    'logging': {
        'level': 'INFO',
    },
}


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load configuration from a TOML file, merged over the defaults.

    A missing path or file yields the defaults.
    """
    config = copy.deepcopy(DEFAULT_CONFIG)

    if config_path and Path(config_path).exists():
        with open(config_path, 'r') as f:
            user_config = toml.load(f)
        for section, values in user_config.items():
            if isinstance(values, dict) and isinstance(config.get(section), dict):
                config[section].update(values)
            else:
                config[section] = values
    elif config_path:
        logger.warning(f"Config file {config_path} not found, using defaults")

    return config


def build_engine(config: Dict[str, Any]) -> VirtualTimeEngine:
    """Create an engine persisted according to the [storage] section."""
    storage_config = config.get('storage', {})
    backend = FileStorage(storage_config.get('path', DEFAULT_CONFIG['storage']['path']))
    store = StateStore(backend, key=storage_config.get('key', DEFAULT_KEY))
    return VirtualTimeEngine(store=store)


def cmd_now(engine: VirtualTimeEngine, args) -> int:
    if args.iso:
        print(engine.now_datetime().isoformat())
    else:
        print(f"{engine.now():.0f}")
    return 0


def cmd_status(engine: VirtualTimeEngine, args) -> int:
    status = status_snapshot(engine)
    if args.json:
        print(json.dumps(status, indent=2))
    else:
        print(f"Virtual time: {status['clock']}  {status['date']}")
        print(f"ISO:          {status['iso']}")
        print(f"Speed:        {status['speed_label']}")
        print(f"Offset:       {status['offset_ms']:+.0f} ms")
    return 0


def cmd_set_time(engine: VirtualTimeEngine, args) -> int:
    if not engine.set_time(args.target):
        logger.error(f"Could not parse time target: {args.target!r}")
        return 1
    print(engine.now_datetime().isoformat())
    return 0


def cmd_set_speed(engine: VirtualTimeEngine, args) -> int:
    value = clamp_speed_input(args.value) if args.clamp else args.value
    if not engine.set_speed(value):
        logger.error(f"Speed must be a finite number > 0, got {args.value!r}")
        return 1
    print(format_speed(engine.speed))
    return 0


def cmd_reset(engine: VirtualTimeEngine, args) -> int:
    engine.reset()
    print(engine.now_datetime().isoformat())
    return 0


def cmd_forget(engine: VirtualTimeEngine, args) -> int:
    if engine.store is None or not engine.store.clear():
        return 1
    return 0


def cmd_watch(engine: VirtualTimeEngine, args, config: Dict[str, Any]) -> int:
    """Print the clock readout periodically, like the panel's refresh timer."""
    interval = args.interval
    if interval is None:
        interval = config.get('clock', {}).get('poll_interval', 1.0)
    shown = 0
    try:
        while args.count is None or shown < args.count:
            now_ms = engine.now()
            print(
                f"{format_clock(now_ms)}  {format_date(now_ms)}  "
                f"[{format_status_bar(now_ms)}]  {format_speed(engine.speed)}",
                flush=True
            )
            shown += 1
            if args.count is None or shown < args.count:
                time.sleep(interval)
    except KeyboardInterrupt:
        pass
    return 0


def cmd_serve(engine: VirtualTimeEngine, args, config: Dict[str, Any]) -> int:
    from .web import ControlServer

    server_config = config.get('server', {})
    server = ControlServer(
        engine,
        port=args.port or server_config.get('port', 8080),
        bind_address=args.bind or server_config.get('bind_address', '127.0.0.1')
    )
    if not server.start():
        return 1

    try:
        while server.running:
            time.sleep(1.0)
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down...")
    finally:
        server.stop()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='virtual-clock',
        description='virtual-clock: Controllable process clock',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Jump to a date and run ten times faster
    virtual-clock set-time 2030-01-01T09:00:00Z
    virtual-clock set-speed 10

    # Back to real time
    virtual-clock reset
        """
    )

    parser.add_argument(
        '--config', '-c',
        help='Path to TOML configuration file'
    )
    parser.add_argument(
        '--state-file', '-s',
        help='Clock state file (overrides config)'
    )
    parser.add_argument(
        '--debug',
        action='store_true',
        help='Enable debug logging'
    )

    sub = parser.add_subparsers(dest='command', required=True)

    p = sub.add_parser('now', help='Print current virtual time')
    p.add_argument('--iso', action='store_true', help='Print as ISO-8601 instead of epoch ms')

    p = sub.add_parser('status', help='Show calibration and readout')
    p.add_argument('--json', action='store_true', help='Print JSON')

    p = sub.add_parser('set-time', help='Jump virtual time to TARGET')
    p.add_argument('target', help='Epoch milliseconds or ISO-8601 time')

    p = sub.add_parser('set-speed', help='Change virtual time speed')
    p.add_argument('value', help='Multiplier (> 0)')
    p.add_argument(
        '--clamp',
        action='store_true',
        help='Normalize like the panel input (invalid -> 1, clamped to 0.1-5)'
    )

    sub.add_parser('reset', help='Return to real time at speed 1')
    sub.add_parser('forget', help='Delete the persisted clock state')

    p = sub.add_parser('watch', help='Print the readout periodically')
    p.add_argument('--interval', type=float, help='Seconds between refreshes (default: config)')
    p.add_argument('--count', '-n', type=int, help='Stop after N readouts')

    p = sub.add_parser('serve', help='Run the HTTP control server')
    p.add_argument('--port', '-p', type=int, help='HTTP port (default: config)')
    p.add_argument('--bind', help='Bind address (default: config)')

    return parser


def main(argv=None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    config = load_config(args.config)
    if args.state_file:
        config['storage']['path'] = args.state_file

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)
    else:
        level = str(config.get('logging', {}).get('level', 'INFO')).upper()
        logging.getLogger().setLevel(getattr(logging, level, logging.INFO))

    engine = build_engine(config)

    handlers = {
        'now': cmd_now,
        'status': cmd_status,
        'set-time': cmd_set_time,
        'set-speed': cmd_set_speed,
        'reset': cmd_reset,
        'forget': cmd_forget,
    }
    if args.command == 'watch':
        return cmd_watch(engine, args, config)
    if args.command == 'serve':
        return cmd_serve(engine, args, config)
    return handlers[args.command](engine, args)


if __name__ == '__main__':
    sys.exit(main())
