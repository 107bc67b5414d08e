"""
Report rendering

Turns the plain dicts produced by the report objects' ``to_dict()`` into
JSON or human-readable text.
"""

import json
from typing import Any, Callable, Dict, List, Optional

from routing_stats.reports.world import ALL_COUNTRIES

RULE = "=" * 80
SUBRULE = "-" * 40


def render_json(data: Any) -> str:
    return json.dumps(data, indent=2)


def _percent(value: Optional[float]) -> str:
    return "n/a" if value is None else f"{value:.2f}%"


def _stat_line(name: str, stat: Dict) -> str:
    pct = stat['percentages']
    return (f"{name:<8} {stat['total']:>9} {stat['valid']:>9} {stat['invalid_asn']:>9} "
            f"{stat['invalid_length']:>9} {stat['not_found']:>9} "
            f"{_percent(pct['adoption']):>9} {_percent(pct['quality']):>9} {_percent(pct['seen']):>9}")


def render_world_text(world: Dict[str, Dict]) -> str:
    """Overall bucket first, then every country in code order"""
    lines = [RULE, "RPKI ORIGIN VALIDATION BY COUNTRY", RULE, ""]
    lines.append(f"{'country':<8} {'total':>9} {'valid':>9} {'inv-asn':>9} {'inv-len':>9} "
                 f"{'notfound':>9} {'adoption':>9} {'quality':>9} {'seen':>9}")
    lines.append(SUBRULE * 2)
    for country, stat in world.items():
        lines.append(_stat_line(country, stat))
        if country == ALL_COUNTRIES and len(world) > 1:
            lines.append("")
    return "\n".join(lines) + "\n"


def _announcement_line(item: Dict) -> str:
    line = f"{item['prefix']:<44} {item['asn']:<12}"
    if 'state' in item:
        line += f" {item['state']}"
    return line


def _vrp_line(item: Dict) -> str:
    line = f"{item['prefix']:<44} {item['asn']:<12} max {item['max_length']}"
    if item.get('trust_anchor'):
        line += f" ({item['trust_anchor']})"
    if 'seen' in item:
        line += "  seen" if item['seen'] else "  unseen"
    return line


def render_invalids_text(invalids: List[Dict]) -> str:
    lines = [f"{len(invalids)} announcements not valid", SUBRULE]
    lines.extend(_announcement_line(item) for item in invalids)
    return "\n".join(lines) + "\n"


def render_seen_text(visibility: List[Dict]) -> str:
    seen = sum(1 for item in visibility if item['seen'])
    lines = [f"{seen} of {len(visibility)} VRPs seen", SUBRULE]
    lines.extend(_vrp_line(item) for item in visibility)
    return "\n".join(lines) + "\n"


def render_resources_text(report: Dict) -> str:
    announcements = report['announcements']
    vrps = report['vrps']

    lines = [RULE, "RESOURCE REPORT", RULE, ""]
    lines.append(f"Scope: {report['scope']['text'] or '(everything)'}")
    lines.append("")
    lines.append("ANNOUNCEMENTS")
    lines.append(SUBRULE)
    lines.append(f"Total: {announcements['total']}")
    lines.append(f"Valid: {announcements['valid']}")
    lines.append(f"Invalid ASN: {announcements['invalid_asn']}")
    lines.append(f"Invalid length: {announcements['invalid_length']}")
    lines.append(f"Not found: {announcements['not_found']}")

    if announcements['invalids']:
        lines.append("")
        lines.append("INVALID ANNOUNCEMENTS")
        lines.append(SUBRULE)
        lines.extend(_announcement_line(item) for item in announcements['invalids'])

    lines.append("")
    lines.append("VRPS")
    lines.append(SUBRULE)
    lines.append(f"Total: {vrps['total']}")
    lines.append(f"Unseen: {len(vrps['unseen'])}")
    lines.extend(_vrp_line(item) for item in vrps['unseen'])
    return "\n".join(lines) + "\n"


def render_lookup_text(result: Dict) -> str:
    lines = [f"{result['resource']} ({result['kind']})", SUBRULE]
    lines.append(f"Country: {result['country']}")
    delegation = result.get('delegation')
    if delegation:
        lines.append(f"Delegation: {delegation['resource']} {delegation['registry']} {delegation['state']}")

    lines.append("")
    lines.append(f"VRPs ({len(result['vrps'])})")
    lines.extend("  " + _vrp_line(item) for item in result['vrps'])

    lines.append("")
    lines.append(f"Announcements ({len(result['announcements'])})")
    lines.extend("  " + _announcement_line(item) for item in result['announcements'])

    covering = result.get('covering_announcements')
    if covering:
        lines.append("")
        lines.append(f"Covering announcements ({len(covering)})")
        lines.extend("  " + _announcement_line(item) for item in covering)
    return "\n".join(lines) + "\n"


def render_snapshot_text(summary: Dict) -> str:
    lines = [f"Snapshot version {summary.get('version', '-')}", SUBRULE]
    for key in ('built_at', 'build_seconds', 'memory_mb', 'announcements', 'vrps',
                'valid', 'invalid_asn', 'invalid_length', 'not_found'):
        if key in summary:
            lines.append(f"{key}: {summary[key]}")
    return "\n".join(lines) + "\n"


TEXT_RENDERERS: Dict[str, Callable[[Any], str]] = {
    'world': render_world_text,
    'invalids': render_invalids_text,
    'seen': render_seen_text,
    'resources': render_resources_text,
    'lookup': render_lookup_text,
    'snapshot': render_snapshot_text,
}


def render(kind: str, data: Any, output_format: str = "json") -> str:
    """Render a report dict as 'json' or 'text'"""
    if output_format == "json":
        return render_json(data) + "\n"
    if output_format == "text":
        return TEXT_RENDERERS[kind](data)
    raise ValueError(f"Unknown output format '{output_format}'")
