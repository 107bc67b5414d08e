#!/usr/bin/env python3
"""
routing-stats - RPKI origin validation statistics for the global routing table

Usage examples:
routing-stats world --announcements riswhoisdump.IPv4.gz riswhoisdump.IPv6.gz --vrps vrps.csv --delegations nro-stats.txt
routing-stats resources --scope "193.0.0.0/21,AS3333" --announcements ris.txt --vrps vrps.json --format text
routing-stats check-scope "193.0.0.0/8,194.0.0.0-194.0.1.3"
routing-stats daemon --announcements ris.txt --vrps vrps.csv --port 8080
"""

import argparse
import sys
from pathlib import Path

from routing_stats import __version__
from routing_stats.reports.dataset import Dataset, load_dataset
from routing_stats.reports.render import render
from routing_stats.reports.scope import Scope, parse_scope, parse_scope_parts
from routing_stats.reports.service import ReportService
from routing_stats.utils.config import get_config, get_config_manager, reset_config_manager
from routing_stats.utils.error_handling import (
    ConfigurationError, ErrorFormatter, ValidationError, handle_errors,
    print_success, print_warning, validate_common_args
)
from routing_stats.utils.logging import get_logger, log_run_context, setup_logging


def setup_app_logging(verbose: bool = False, quiet: bool = False):
    """Configure logging for the application"""
    if quiet:
        level = 'WARNING'
    elif verbose:
        level = 'DEBUG'
    else:
        level = 'INFO'

    setup_logging(level=level, console_colors=True)


def apply_args_to_config(args):
    """Command line options override file and environment configuration"""
    if getattr(args, 'config', None):
        reset_config_manager()
        get_config_manager(Path(args.config))

    manager = get_config_manager()
    manager.update_input_config(
        announcement_files=getattr(args, 'announcements', None),
        vrp_file=getattr(args, 'vrps', None),
        delegation_file=getattr(args, 'delegations', None),
    )
    manager.update_validation_config(
        min_peers=getattr(args, 'min_peers', None),
        max_workers=getattr(args, 'workers', None),
    )

    config = manager.get_config()
    if getattr(args, 'format', None):
        config.output.format = args.format
    if getattr(args, 'host', None):
        config.daemon.host = args.host
    if getattr(args, 'port', None) is not None:
        config.daemon.port = args.port
    if getattr(args, 'reload_minutes', None) is not None:
        config.daemon.reload_interval_minutes = args.reload_minutes
    return config


def _scope_from_args(args) -> Scope:
    return parse_scope_parts(getattr(args, 'scope', None), getattr(args, 'ips', None),
                             getattr(args, 'asns', None))


def _load_service() -> ReportService:
    dataset: Dataset = load_dataset(config=get_config())
    return ReportService(dataset)


def _emit(kind: str, data):
    sys.stdout.write(render(kind, data, get_config().output.format))


@handle_errors('routing-stats.world')
def cmd_world(args):
    """Per-country validation statistics"""
    service = _load_service()
    _emit('world', service.world_report().to_dict())
    return 0


@handle_errors('routing-stats.invalids')
def cmd_invalids(args):
    """List announcements that are not valid"""
    scope = _scope_from_args(args)
    service = _load_service()
    invalids = service.invalids_report(scope)
    _emit('invalids', [item.to_dict() for item in invalids])
    return 0


@handle_errors('routing-stats.seen')
def cmd_seen(args):
    """VRP visibility in the routing table"""
    scope = _scope_from_args(args)
    service = _load_service()
    visibility = service.seen_report(scope)
    if args.unseen_only:
        visibility = [item for item in visibility if not item.seen]
    _emit('seen', [item.to_dict() for item in visibility])
    return 0


@handle_errors('routing-stats.resources')
def cmd_resources(args):
    """Validity breakdown and VRP visibility for a resource scope"""
    scope = _scope_from_args(args)
    if scope.is_unscoped and not args.all:
        raise ValidationError(
            "No resources given",
            "scope",
            "Pass --scope, --ips or --asns, or --all for the whole table"
        )
    service = _load_service()
    _emit('resources', service.resource_report(scope).to_dict())
    return 0


@handle_errors('routing-stats.lookup')
def cmd_lookup(args):
    """Look up single prefixes, addresses or AS numbers"""
    service = _load_service()
    for resource in args.resources:
        _emit('lookup', service.lookup(resource).to_dict())
    return 0


@handle_errors('routing-stats.check-scope')
def cmd_check_scope(args):
    """Parse scope text and show the entries it contains"""
    scope = parse_scope(args.text)
    if scope.is_unscoped:
        print_warning("Scope is empty and matches every resource")
    else:
        print_success(f"Scope OK: {len(scope.entries())} entries")
    print(f"  Prefixes: {', '.join(str(p) for p in scope.prefixes) or '-'}")
    print(f"  Address ranges: {', '.join(str(r) for r in scope.ranges) or '-'}")
    print(f"  AS numbers: {', '.join(str(a) for a in scope.asns) or '-'}")
    return 0


@handle_errors('routing-stats.daemon')
def cmd_daemon(args):
    """Serve reports over HTTP, reloading the inputs periodically"""
    from routing_stats.reports.snapshot import SnapshotHolder
    from webui.server import serve

    logger = get_logger('routing-stats.daemon')
    config = get_config()

    issues = get_config_manager().validate_config()
    if issues:
        raise ConfigurationError(
            "Invalid configuration: " + "; ".join(issues),
            guidance="Fix the configuration file or command line options"
        )

    holder = SnapshotHolder(loader=lambda: load_dataset(config=config))
    holder.reload()
    holder.start_periodic_reload(config.daemon.reload_interval_minutes)

    logger.info(f"Serving on {config.daemon.host}:{config.daemon.port}")
    try:
        serve(holder, config.daemon.host, config.daemon.port, config.logging.level)
    finally:
        holder.stop()
    return 0


def create_common_flags_parent():
    """Create a parent parser with the flags shared by every sub-command"""
    parent_parser = argparse.ArgumentParser(add_help=False)

    verbose_group = parent_parser.add_mutually_exclusive_group()
    verbose_group.add_argument('-v', '--verbose', action='store_true',
                               help='Enable verbose logging')
    verbose_group.add_argument('-q', '--quiet', action='store_true',
                               help='Quiet mode (warnings only)')

    parent_parser.add_argument('--config', metavar='FILE',
                               help='JSON configuration file')
    parent_parser.add_argument('--format', choices=['json', 'text'],
                               help='Output format (default: json)')
    return parent_parser


def create_inputs_parent():
    """Input file and validation tuning options"""
    parent_parser = argparse.ArgumentParser(add_help=False)
    parent_parser.add_argument('--announcements', nargs='+', metavar='FILE',
                               help='RIS whois dump(s) with announcements')
    parent_parser.add_argument('--vrps', metavar='FILE',
                               help='VRP list (CSV or JSON)')
    parent_parser.add_argument('--delegations', metavar='FILE',
                               help='Registry delegation statistics (NRO extended or CSV)')
    parent_parser.add_argument('--min-peers', type=int, metavar='N',
                               help='Drop announcements seen by fewer peers (default: 5)')
    parent_parser.add_argument('--workers', type=int, metavar='N',
                               help='Worker threads for parsing and classification (default: 4)')
    return parent_parser


def create_scope_parent():
    """Resource scope options"""
    parent_parser = argparse.ArgumentParser(add_help=False)
    parent_parser.add_argument('--scope', metavar='LIST',
                               help='Comma separated prefixes, address ranges, ASNs and ASN ranges')
    parent_parser.add_argument('--ips', metavar='LIST',
                               help='Comma separated prefixes and address ranges')
    parent_parser.add_argument('--asns', metavar='LIST',
                               help='Comma separated ASNs and ASN ranges')
    return parent_parser


def create_parser():
    """Create and configure argument parser"""
    common = create_common_flags_parent()
    inputs = create_inputs_parent()
    scoped = create_scope_parent()

    parser = argparse.ArgumentParser(
        prog='routing-stats',
        description='RPKI origin validation statistics for the global routing table',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
        parents=[common]
    )
    parser.add_argument('--version', action='version', version=f'routing-stats {__version__}')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    subparsers.add_parser('world',
                          help='Validation statistics per country',
                          parents=[common, inputs])

    subparsers.add_parser('invalids',
                          help='Announcements that are invalid or not found',
                          parents=[common, inputs, scoped])

    seen_parser = subparsers.add_parser('seen',
                                        help='VRPs and whether the routing table matches them',
                                        parents=[common, inputs, scoped])
    seen_parser.add_argument('--unseen-only', action='store_true',
                             help='Only list VRPs without a matching announcement')

    resources_parser = subparsers.add_parser('resources',
                                             help='Report for a set of prefixes and AS numbers',
                                             parents=[common, inputs, scoped])
    resources_parser.add_argument('--all', action='store_true',
                                  help='Report on the whole table when no scope is given')

    lookup_parser = subparsers.add_parser('lookup',
                                          help='Look up prefixes, addresses or AS numbers',
                                          parents=[common, inputs])
    lookup_parser.add_argument('resources', nargs='+',
                               help='Prefix, address or AS number (e.g. 193.0.0.0/21, AS3333)')

    check_parser = subparsers.add_parser('check-scope',
                                         help='Validate scope text without loading data',
                                         parents=[common])
    check_parser.add_argument('text', help='Scope text, e.g. "193.0.0.0/8,AS3333"')

    daemon_parser = subparsers.add_parser('daemon',
                                          help='Serve reports over HTTP',
                                          parents=[common, inputs])
    daemon_parser.add_argument('--host', help='Listen address (default: 127.0.0.1)')
    daemon_parser.add_argument('--port', type=int, help='Listen port (default: 8080)')
    daemon_parser.add_argument('--reload-minutes', type=int, metavar='N',
                               help='Re-read the input files every N minutes (0 disables)')

    return parser


def main(argv=None):
    """Main entry point"""
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_app_logging(args.verbose, args.quiet)

    if not args.command:
        parser.print_help()
        return 1

    try:
        args = validate_common_args(args)
        apply_args_to_config(args)
    except ValidationError as e:
        print(ErrorFormatter.format_error(e))
        return 1

    if args.verbose:
        log_run_context()

    command_functions = {
        'world': cmd_world,
        'invalids': cmd_invalids,
        'seen': cmd_seen,
        'resources': cmd_resources,
        'lookup': cmd_lookup,
        'check-scope': cmd_check_scope,
        'daemon': cmd_daemon,
    }

    return command_functions[args.command](args)


if __name__ == '__main__':
    sys.exit(main())
