import unittest

from dataset_fixtures import ann, asn_delegation, build_dataset, ip_delegation, make_config, vrp
from routing_stats.models import ValidationState
from routing_stats.reports.service import ReportService
from routing_stats.utils.error_handling import InvalidScope, MalformedAsn, MalformedPrefix


def _pairs(items):
    return [(str(item.prefix), item.asn) for item in items]


class TestReportService(unittest.TestCase):

    def setUp(self):
        self.dataset = build_dataset(
            announcements=[
                ann("193.0.0.0/21", 3333),
                ann("193.0.0.0/24", 3333),
                ann("193.0.8.0/24", 65000),
                ann("10.0.0.0/16", 1),
                ann("10.0.0.0/16", 1, peers=50),
                ann("10.1.0.0/16", 2),
                ann("2001:67c:2e8::/48", 3333),
            ],
            vrps=[
                vrp("193.0.0.0/21", 3333, 21),
                vrp("193.0.8.0/21", 3333, 24),
                vrp("10.0.0.0/8", 1, 16),
                vrp("192.0.2.0/24", 64496),
                vrp("2001:67c:2e8::/48", 3333),
            ],
            delegations=[
                ip_delegation("193.0.0.0/8", "NL"),
                ip_delegation("10.0.0.0/8", "US", registry="arin"),
                ip_delegation("2001:67c::/32", "NL"),
                asn_delegation(3333, 3333, "NL"),
            ],
        )
        self.service = ReportService(self.dataset)

    def test_duplicate_announcements_merged(self):
        self.assertEqual(len(self.dataset.validated), 6)
        peers = [a.peers for a in self.dataset.announcements_in(self.dataset.validated[0].prefix)
                 if a.asn == 1]
        self.assertEqual(peers, [50])
        self.assertEqual(str(self.dataset.validated[0].prefix), "10.0.0.0/16")

    def test_world_report(self):
        world = self.service.world_report()
        self.assertEqual(world.overall.total, 6)
        self.assertEqual(world.overall.valid, 3)
        self.assertEqual(world.get("NL").invalid_length, 1)
        self.assertEqual(world.get("NL").invalid_asn, 1)
        self.assertEqual(world.get("US").invalid_asn, 1)
        self.assertEqual(world.overall.vrps_seen, 3)
        self.assertEqual(world.overall.vrps_unseen, 2)

    def test_invalids_report_unscoped(self):
        invalids = self.service.invalids_report()
        self.assertEqual(_pairs(invalids),
                         [("10.1.0.0/16", 2), ("193.0.0.0/24", 3333), ("193.0.8.0/24", 65000)])
        self.assertTrue(all(item.state is not ValidationState.VALID for item in invalids))

    def test_invalids_report_scoped(self):
        invalids = self.service.invalids_report("193.0.0.0/16")
        self.assertEqual(_pairs(invalids), [("193.0.0.0/24", 3333), ("193.0.8.0/24", 65000)])

    def test_scoped_classification_ignores_out_of_scope_vrps(self):
        # AS2 is only invalid because of the AS1 VRP, which this scope leaves out
        invalids = self.service.invalids_report("AS2")
        self.assertEqual(len(invalids), 1)
        self.assertEqual(invalids[0].state, ValidationState.NOT_FOUND)

        invalids = self.service.invalids_report("10.1.0.0/16")
        self.assertEqual(invalids[0].state, ValidationState.INVALID_ASN)

    def test_invalids_report_accepts_parsed_scope(self):
        from routing_stats.reports.scope import parse_scope
        self.assertEqual(_pairs(self.service.invalids_report(parse_scope("AS65000"))),
                         [("193.0.8.0/24", 65000)])

    def test_seen_report_marks_unseen(self):
        visibility = {(str(v.vrp.prefix), v.vrp.asn): v.seen for v in self.service.seen_report()}
        self.assertTrue(visibility[("193.0.0.0/21", 3333)])
        self.assertFalse(visibility[("193.0.8.0/21", 3333)])
        self.assertTrue(visibility[("10.0.0.0/8", 1)])
        self.assertFalse(visibility[("192.0.2.0/24", 64496)])
        self.assertTrue(visibility[("2001:67c:2e8::/48", 3333)])

    def test_seen_report_scoped_lists_contained_vrps(self):
        visibility = self.service.seen_report("193.0.0.0/16")
        self.assertEqual([str(v.vrp.prefix) for v in visibility], ["193.0.0.0/21", "193.0.8.0/21"])

        visibility = self.service.seen_report("10.0.0.0/12")
        self.assertEqual(visibility, [])

    def test_seen_report_only_counts_in_scope_announcements(self):
        visibility = self.service.seen_report("AS3333")
        seen = {str(v.vrp.prefix): v.seen for v in visibility}
        self.assertEqual(seen, {"193.0.0.0/21": True, "193.0.8.0/21": False, "2001:67c:2e8::/48": True})

    def test_seen_report_asn_range(self):
        visibility = self.service.seen_report("AS1-AS2,AS3333,AS64496")
        self.assertEqual([(str(v.vrp.prefix), v.vrp.asn) for v in visibility],
                         [("10.0.0.0/8", 1), ("192.0.2.0/24", 64496), ("193.0.0.0/21", 3333),
                          ("193.0.8.0/21", 3333), ("2001:67c:2e8::/48", 3333)])

        self.assertEqual(self.service.seen_report("AS4-AS3332"), [])

    def test_resource_report(self):
        report = self.service.resource_report("193.0.0.0/16,AS3333")
        self.assertEqual((report.valid, report.invalid_length, report.invalid_asn, report.not_found),
                         (1, 1, 0, 0))
        self.assertEqual(_pairs(report.invalids), [("193.0.0.0/24", 3333)])
        self.assertEqual(report.vrp_total, 2)
        self.assertEqual([str(v.prefix) for v in report.unseen], ["193.0.8.0/21"])

        data = report.to_dict()
        self.assertEqual(data['announcements']['total'], 2)
        self.assertEqual(data['vrps']['unseen'][0]['asn'], "AS3333")
        self.assertEqual(data['scope']['text'], "193.0.0.0/16,AS3333")

    def test_invalid_scope_fails_closed(self):
        with self.assertRaises(InvalidScope):
            self.service.invalids_report("193.0.0.0/16,nonsense")

    def test_lookup_prefix(self):
        result = self.service.lookup("193.0.0.0/21")
        self.assertEqual(result.kind, 'prefix')
        self.assertEqual(result.country, "NL")
        self.assertEqual([str(v.prefix) for v in result.vrps], ["193.0.0.0/21"])
        self.assertEqual(_pairs(result.announcements), [("193.0.0.0/21", 3333), ("193.0.0.0/24", 3333)])
        self.assertEqual(result.to_dict()['covering_announcements'], [])

    def test_lookup_address(self):
        result = self.service.lookup("193.0.0.1")
        self.assertEqual(result.resource, "193.0.0.1/32")
        self.assertEqual(_pairs(result.covering_announcements), [("193.0.0.0/24", 3333), ("193.0.0.0/21", 3333)])
        self.assertEqual(result.covering_announcements[0].state, ValidationState.INVALID_LENGTH)

    def test_lookup_asn(self):
        result = self.service.lookup("as3333")
        self.assertEqual(result.kind, 'asn')
        self.assertEqual(result.resource, "AS3333")
        self.assertEqual(result.country, "NL")
        self.assertEqual(len(result.vrps), 3)
        self.assertEqual(len(result.announcements), 3)
        self.assertNotIn('covering_announcements', result.to_dict())

    def test_lookup_malformed(self):
        with self.assertRaises(MalformedPrefix):
            self.service.lookup("193.0.0.1/8")
        with self.assertRaises(MalformedPrefix):
            self.service.lookup("not-an-address")
        with self.assertRaises(MalformedAsn):
            self.service.lookup("AS99999999999")


class TestScenarioUnseen(unittest.TestCase):

    def test_vrp_without_valid_announcement_is_unseen(self):
        dataset = build_dataset(
            announcements=[ann("10.0.0.0/24", 1), ann("10.0.0.0/16", 2)],
            vrps=[vrp("10.0.0.0/16", 1, 20)],
        )
        visibility = ReportService(dataset).seen_report()
        self.assertEqual(len(visibility), 1)
        self.assertFalse(visibility[0].seen)

    def test_parallel_build_matches_sequential(self):
        announcements = [ann(f"10.{i}.0.0/16", i % 5) for i in range(40)]
        vrps = [vrp(f"10.{i}.0.0/16", i % 3, 24) for i in range(0, 40, 2)]
        sequential = build_dataset(announcements, vrps)
        parallel = build_dataset(announcements, vrps,
                                 config=make_config(max_workers=4, parallel_threshold=1, chunk_size=7))
        self.assertEqual(parallel.validated, sequential.validated)
        self.assertEqual(parallel.visibility, sequential.visibility)
        self.assertEqual(parallel.world, sequential.world)


if __name__ == '__main__':
    unittest.main()
