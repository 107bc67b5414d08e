import bz2
import gzip
import json
import tempfile
import unittest
from pathlib import Path

from routing_stats.models import AsnDelegation, DelegationState, IpDelegation
from routing_stats.processors.common import ParseStats, base_suffix
from routing_stats.processors.delegations import parse_nro_lines, read_delegation_file
from routing_stats.processors.ris import parse_ris_lines, read_ris_file
from routing_stats.processors.vrps import read_vrp_file
from routing_stats.resources.ip import AddressRange, AsnRange, Prefix

RIS_DUMP = """\
% This file contains the origin AS of prefixes seen by RIS
% columns: origin, prefix, peers

3333\t193.0.0.0/21\t312
3333\t193.0.10.0/23\t2
{64496,64497}\t192.0.2.0/24\t100
65000\t193.0.0.1/21\t100
garbage line
15169\t8.8.8.0/24\tmany
15169\t2001:4860::/32\t200
"""

NRO_STATS = """\
2.3|nro|20240101|4|19830705|20240101|+0000
ripencc|*|ipv4|*|3|summary
ripencc|NL|ipv4|193.0.0.0|2048|19930901|allocated|A91A7381
ripencc|NL|ipv4|194.0.0.0|768|19930901|assigned|A91A7381
ripencc|nl|ipv6|2001:67c:2e8::|48|20101117|assigned|A91A7381
ripencc|NL|asn|3333|1|19930901|allocated|A91A7381
arin||asn|64496|16|20100101|reserved|
iana|ZZ|ipv4|0.0.0.0|16777216|19810901|ietf|
ripencc|NL|ipv4|193.0.0.0|lots|19930901|allocated|
ripencc|NL|ipv4|193.0.0.0|2048|19930901|lent|
unknown|NL|ipv4|193.0.0.0|2048|19930901|allocated|
"""


class _TempDir(unittest.TestCase):

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.dir = Path(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    def write(self, name, content):
        path = self.dir / name
        if name.endswith('.gz'):
            with gzip.open(path, 'wt', encoding='utf-8') as f:
                f.write(content)
        elif name.endswith('.bz2'):
            with bz2.open(path, 'wt', encoding='utf-8') as f:
                f.write(content)
        else:
            path.write_text(content, encoding='utf-8')
        return path


class TestRisParser(_TempDir):

    def test_parse_lines(self):
        stats = ParseStats(source="test")
        announcements = list(parse_ris_lines(RIS_DUMP.splitlines(), 5, stats))
        self.assertEqual([(str(a.prefix), a.asn, a.peers) for a in announcements],
                         [("193.0.0.0/21", 3333, 312), ("2001:4860::/32", 15169, 200)])
        self.assertEqual(stats.accepted, 2)
        self.assertEqual(stats.skipped_low_visibility, 1)
        self.assertEqual(stats.skipped_as_set, 1)
        self.assertEqual(stats.skipped_malformed, 3)
        self.assertEqual(stats.skipped, 5)

    def test_min_peers_is_inclusive(self):
        stats = ParseStats(source="test")
        announcements = list(parse_ris_lines(["3333 193.0.10.0/23 2"], 2, stats))
        self.assertEqual(len(announcements), 1)

    def test_read_compressed(self):
        for name in ("riswhoisdump.IPv4", "riswhoisdump.IPv4.gz", "riswhoisdump.IPv4.bz2"):
            with self.subTest(name=name):
                announcements, stats = read_ris_file(self.write(name, RIS_DUMP), min_peers=5)
                self.assertEqual(len(announcements), 2)
                self.assertEqual(stats.source, str(self.dir / name))
                self.assertIn('duration', stats.to_dict())


class TestVrpParser(_TempDir):

    def test_csv(self):
        path = self.write("vrps.csv", (
            "ASN,IP Prefix,Max Length,Trust Anchor\n"
            "AS3333,193.0.0.0/21,21,ripe\n"
            "AS13335,2606:4700::/32,48,arin\n"
            "64496,192.0.2.0/24,,\n"
            "ASX,10.0.0.0/8,8,ripe\n"
            "AS1,10.0.0.0/8,eight,ripe\n"
            "AS1,10.0.0.0/8\n"
        ))
        vrps, stats = read_vrp_file(path)
        self.assertEqual([(str(v.prefix), v.asn, v.max_length, v.trust_anchor) for v in vrps], [
            ("193.0.0.0/21", 3333, 21, "ripe"),
            ("2606:4700::/32", 13335, 48, "arin"),
            ("192.0.2.0/24", 64496, 24, None),
        ])
        self.assertEqual(stats.skipped_malformed, 3)

    def test_rpki_client_json(self):
        document = {
            "metadata": {"buildtime": "2024-01-01T00:00:00Z"},
            "roas": [
                {"asn": 3333, "prefix": "193.0.0.0/21", "maxLength": 21, "ta": "ripe"},
                {"asn": "AS13335", "prefix": "1.1.1.0/24", "maxLength": 24, "ta": "apnic"},
                {"asn": 1, "maxLength": 24, "ta": "apnic"},
            ],
        }
        vrps, stats = read_vrp_file(self.write("vrps.json.gz", json.dumps(document)))
        self.assertEqual([(str(v.prefix), v.asn, v.max_length) for v in vrps],
                         [("193.0.0.0/21", 3333, 21), ("1.1.1.0/24", 13335, 24)])
        self.assertEqual(vrps[0].trust_anchor, "ripe")
        self.assertEqual(stats.skipped_malformed, 1)

    def test_routinator_json(self):
        document = {
            "validated-roa-payloads": [
                {"asn": "AS3333", "prefix": "193.0.0.0/21", "max-length": 22, "ta": "ripe"},
            ],
        }
        vrps, _ = read_vrp_file(self.write("vrps.json", json.dumps(document)))
        self.assertEqual(vrps[0].max_length, 22)

    def test_unknown_json_layout(self):
        from routing_stats.utils.error_handling import ValidationError
        with self.assertRaises(ValidationError):
            read_vrp_file(self.write("vrps.json", json.dumps({"routes": []})))


class TestDelegationParser(_TempDir):

    def test_nro_records(self):
        stats = ParseStats(source="test")
        delegations = list(parse_nro_lines(NRO_STATS.splitlines(), stats))
        self.assertEqual(stats.accepted, 6)
        self.assertEqual(stats.skipped_malformed, 3)

        first = delegations[0]
        self.assertIsInstance(first, IpDelegation)
        self.assertEqual(first.resource, AddressRange.from_str("193.0.0.0-193.0.7.255"))
        self.assertEqual(first.state, DelegationState.ASSIGNED)

        odd_sized = delegations[1]
        self.assertEqual(str(odd_sized.resource), "194.0.0.0-194.0.2.255")
        self.assertEqual([str(p) for p in odd_sized.prefixes()], ["194.0.0.0/23", "194.0.2.0/24"])

        self.assertEqual(delegations[2].resource, Prefix.from_str("2001:67c:2e8::/48"))
        self.assertEqual(delegations[2].country, "NL")

        asn = delegations[3]
        self.assertIsInstance(asn, AsnDelegation)
        self.assertEqual(asn.resource, AsnRange(3333, 3333))
        self.assertEqual(delegations[4].country, "unknown")
        self.assertEqual(delegations[4].state, DelegationState.RESERVED)
        self.assertEqual(delegations[5].state, DelegationState.IETF)

    def test_read_nro_file(self):
        delegations, stats = read_delegation_file(self.write("delegated-extended", NRO_STATS))
        self.assertEqual(len(delegations), 6)
        self.assertEqual(stats.accepted, 6)

    def test_read_csv_file(self):
        path = self.write("delegations.csv.gz", (
            "prefix,rir,date,cc,state\n"
            "193.0.0.0/21,ripencc,19930901,NL,allocated\n"
            "2001:67c::/32,ripencc,20101117,,assigned\n"
            "193.0.0.0,ripencc,19930901,NL,allocated\n"
        ))
        delegations, stats = read_delegation_file(path)
        self.assertEqual([(str(d.resource), d.country) for d in delegations],
                         [("193.0.0.0/21", "NL"), ("2001:67c::/32", "unknown")])
        self.assertEqual(stats.skipped_malformed, 1)


class TestCommon(unittest.TestCase):

    def test_base_suffix(self):
        self.assertEqual(base_suffix("vrps.json.gz"), ".json")
        self.assertEqual(base_suffix("vrps.csv"), ".csv")
        self.assertEqual(base_suffix("riswhoisdump.IPv4.bz2"), ".ipv4")


if __name__ == '__main__':
    unittest.main()
