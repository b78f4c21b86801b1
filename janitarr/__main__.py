#!/usr/bin/env python3
"""
Janitarr - Entry Point
Run with: python -m janitarr <command>
"""

import argparse
import json
import sys
import signal
import os

from . import __version__
from .config import Config, ConfigError, SETTING_KEYS
from .logger import Logger
from .core import JanitarrCore
from .automation import SchedulerError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="janitarr",
        description="Janitarr - Automated library maintenance for Radarr and Sonarr"
    )
    parser.add_argument("--config", "-c", type=str,
                        default=os.environ.get('JANITARR_CONFIG', "/config/config.json"),
                        help="Path to configuration file")
    parser.add_argument("--debug", action="store_true",
                        help="Enable debug logging")
    parser.add_argument("--version", "-v", action="version",
                        version=f"Janitarr v{__version__}")

    sub = parser.add_subparsers(dest="command", required=True)

    start = sub.add_parser("start", help="Run the scheduler and web API")
    start.add_argument("--host", type=str, default="0.0.0.0", help="Web server host")
    start.add_argument("--port", "-p", type=int, default=8080, help="Web server port")

    run = sub.add_parser("run", help="Run one automation cycle now")
    run.add_argument("--dry-run", action="store_true",
                     help="Show what would be searched without triggering anything")

    sub.add_parser("scan", help="Detect missing and cutoff-unmet content only")
    sub.add_parser("status", help="Show configuration and scheduler status")

    server = sub.add_parser("server", help="Manage servers")
    server_sub = server.add_subparsers(dest="server_command", required=True)
    server_sub.add_parser("list", help="List configured servers")
    add = server_sub.add_parser("add", help="Add a server")
    add.add_argument("name")
    add.add_argument("type", choices=["radarr", "sonarr"])
    add.add_argument("url")
    add.add_argument("api_key")
    remove = server_sub.add_parser("remove", help="Remove a server")
    remove.add_argument("server", help="Server ID or name")
    test = server_sub.add_parser("test", help="Test a server connection")
    test.add_argument("server", help="Server ID or name")

    config_cmd = sub.add_parser("config", help="Show or change settings")
    config_sub = config_cmd.add_subparsers(dest="config_command", required=True)
    show = config_sub.add_parser("show", help="Show current settings")
    show.add_argument("--json", action="store_true", help="Output as JSON")
    set_cmd = config_sub.add_parser("set", help="Change one setting")
    set_cmd.add_argument("key", help=", ".join(sorted(SETTING_KEYS)))
    set_cmd.add_argument("value")

    logs = sub.add_parser("logs", help="Show the activity log")
    logs.add_argument("-n", "--limit", type=int, default=20, help="Number of entries to show")
    logs.add_argument("--all", action="store_true", help="Show every entry")
    logs.add_argument("--json", action="store_true", help="Output as JSON")
    logs.add_argument("--clear", action="store_true", help="Delete all entries")

    return parser


def cmd_start(core: JanitarrCore, args, log) -> int:
    from .web import WebServer

    def signal_handler(signum, frame):
        print("\n🛑 Shutting down Janitarr...")
        core.shutdown()
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    core.start_scheduler()
    log.info(f"🌐 Starting web server on http://{args.host}:{args.port}")
    WebServer(core).run(host=args.host, port=args.port, debug=args.debug)
    return 0


def cmd_run(core: JanitarrCore, args, log) -> int:
    try:
        result = core.run_cycle(dry_run=args.dry_run or None)
    except SchedulerError as e:
        print(f"❌ {e}")
        return 1

    detection = result.detection_results
    search = result.search_results
    prefix = "[dry-run] " if result.dry_run else ""
    print(f"{prefix}Servers: {detection.success_count} ok, {detection.failure_count} failed")
    print(f"{prefix}Detected: {detection.total_missing} missing, {detection.total_cutoff} cutoff unmet")
    print(f"{prefix}Searches: {search.missing_triggered} missing, {search.cutoff_triggered} cutoff")
    print(f"Duration: {result.duration.total_seconds():.1f}s")
    for error in result.errors:
        print(f"  ❌ {error}")
    return 0 if result.success else 1


def cmd_scan(core: JanitarrCore, args, log) -> int:
    results = core.scan()
    for res in results.results:
        if res.error:
            print(f"  ❌ {res.server_name} ({res.server_type}): {res.error}")
        else:
            print(f"  ✅ {res.server_name} ({res.server_type}): "
                  f"{len(res.missing)} missing, {len(res.cutoff)} cutoff unmet")
    print(f"Total: {results.total_missing} missing, {results.total_cutoff} cutoff unmet")
    return 0 if results.failure_count == 0 else 1


def cmd_status(core: JanitarrCore, args, log) -> int:
    config = core.config
    limits = config.search_limits
    print(f"Servers: {len(config.servers)} configured, {len(config.get_enabled_servers())} enabled")
    print(f"Interval: every {config.schedule.interval_hours}h "
          f"({'enabled' if config.schedule.enabled else 'disabled'})")
    print(f"Limits: missing {limits.missing_movies} movies / {limits.missing_episodes} episodes, "
          f"cutoff {limits.cutoff_movies} movies / {limits.cutoff_episodes} episodes")
    print(f"Dry run: {config.dry_run}")
    return 0


def cmd_server(core: JanitarrCore, args, log) -> int:
    if args.server_command == "list":
        for server in core.config.servers:
            state = "enabled" if server.enabled else "disabled"
            print(f"  {server.id}  {server.name:<20} {server.type:<7} {server.url}  ({state})")
        return 0

    try:
        if args.server_command == "add":
            server = core.add_server({'name': args.name, 'type': args.type,
                                      'url': args.url, 'api_key': args.api_key})
            print(f"✅ Added {server['type']} server {server['name']} ({server['id']})")
        elif args.server_command == "remove":
            core.remove_server(args.server)
            print(f"✅ Removed {args.server}")
        elif args.server_command == "test":
            result = core.test_server(args.server)
            icon = "✅" if result['success'] else "❌"
            print(f"{icon} {result['message']}")
            return 0 if result['success'] else 1
    except ConfigError as e:
        print(f"❌ {e}")
        return 1
    return 0


def cmd_config(core: JanitarrCore, args, log) -> int:
    config = core.config
    if args.config_command == "set":
        try:
            config.set_value(args.key, args.value)
        except ConfigError as e:
            print(f"❌ {e}")
            return 1
        print(f"✅ Set {args.key} = {args.value}")
        return 0

    data = config.to_dict()
    if args.json:
        print(json.dumps(data, indent=2))
        return 0

    schedule = data['schedule']
    limits = data['search_limits']
    print("Schedule:")
    print(f"  interval: {schedule['interval_hours']}h")
    print(f"  enabled:  {schedule['enabled']}")
    print("Limits:")
    print(f"  missing: {limits['missing_movies']} movies, {limits['missing_episodes']} episodes")
    print(f"  cutoff:  {limits['cutoff_movies']} movies, {limits['cutoff_episodes']} episodes")
    print(f"Log retention: {data['logs']['retention_days']} days")
    print(f"Dry run: {data['dry_run']}")
    return 0


def cmd_logs(core: JanitarrCore, args, log) -> int:
    if args.clear:
        removed = core.clear_logs()
        print(f"✅ All logs cleared ({removed} entries)")
        return 0

    limit = core.activity.capacity if args.all else args.limit
    entries = core.get_logs(limit=limit)
    if args.json:
        print(json.dumps(entries, indent=2))
        return 0

    if not entries:
        print("No activity recorded yet")
        return 0
    for entry in entries:
        icon = "❌" if entry['type'] == 'error' else " "
        server = entry['server_name'] or "-"
        print(f"{icon} {entry['timestamp'][:19]}  {entry['type']:<11} {server:<15} {entry['message']}")
    return 0


COMMANDS = {
    "start": cmd_start,
    "run": cmd_run,
    "scan": cmd_scan,
    "status": cmd_status,
    "server": cmd_server,
    "config": cmd_config,
    "logs": cmd_logs,
}


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = Config(args.config)
    except (ConfigError, ValueError, TypeError) as e:
        print(f"❌ Invalid configuration: {e}")
        return 2

    logger = Logger(log_dir=str(config.data_dir / "logs"), debug=args.debug or config.debug_mode)
    log = logger.get_logger("main")
    if args.command == "start":
        log.info("=" * 60)
        log.info(f"🧹 Janitarr v{__version__} Starting...")
        log.info(f"⏰ Timezone: {os.environ.get('TZ', 'UTC')}")
        log.info("=" * 60)

    core = JanitarrCore(config, logger)
    return COMMANDS[args.command](core, args, log)


if __name__ == "__main__":
    sys.exit(main())
