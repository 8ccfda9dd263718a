"""Tests for address selection and the DNS refresh policy."""

import socket
import unittest
from unittest import mock

import dns.exception
import dns.resolver

from tcpping.errors import UnknownHostname
from tcpping.parser import parse_descriptor
from tcpping.resolver import DnsRefreshPolicy, HostnameResolver, resolve_address, select_address


class FakeResolver:
    """Returns queued answers; each entry is a list of addresses or an exception."""

    def __init__(self, *answers):
        self.answers = list(answers)
        self.calls = 0

    def resolve(self, hostname, ipv6=False):
        self.calls += 1
        answer = self.answers[min(self.calls, len(self.answers)) - 1]
        if isinstance(answer, Exception):
            raise answer
        return list(answer)


def _policy(raw, resolver):
    task, state = parse_descriptor(raw, resolver)
    return DnsRefreshPolicy(task, resolver), state


class TestSelectAddress(unittest.TestCase):

    def test_single_candidate(self):
        self.assertEqual(select_address("h", ["192.0.2.1", "2001:db8::1"]), "192.0.2.1")

    def test_random_choice_among_candidates(self):
        addresses = ["192.0.2.1", "192.0.2.2", "192.0.2.3"]
        seen = {select_address("h", addresses) for _ in range(200)}
        self.assertTrue(seen.issubset(set(addresses)))
        self.assertGreater(len(seen), 1)

    def test_ipv4_mapped_is_unmapped(self):
        self.assertEqual(select_address("h", ["::ffff:192.0.2.7"]), "192.0.2.7")

    def test_no_candidate(self):
        with self.assertRaises(UnknownHostname):
            select_address("h", ["192.0.2.1"], ipv6=True)
        with self.assertRaises(UnknownHostname):
            select_address("h", [])


class TestRefreshSchedule(unittest.TestCase):
    """Refresh fires iff attempt > 1 and attempt % dns_interval == 1."""

    def test_default_cadence(self):
        policy, _ = _policy("dns+ipv4://example.test:80", FakeResolver(["192.0.2.1"]))
        due = [n for n in range(1, 42) if policy.is_due(n)]
        self.assertEqual(due, [11, 21, 31, 41])

    def test_never_on_first_attempt(self):
        policy, _ = _policy("dns+ipv4://example.test:80?dns_interval=1", FakeResolver(["192.0.2.1"]))
        self.assertFalse(policy.is_due(1))

    def test_raw_tasks_never_refresh(self):
        resolver = FakeResolver(["192.0.2.1"])
        policy, state = _policy("ipv4://192.0.2.1:80?dns_interval=2", resolver)
        for attempt in range(1, 20):
            self.assertFalse(policy.check(state, attempt).required)
        self.assertEqual(resolver.calls, 0)

    def test_not_due_path_does_no_io(self):
        resolver = FakeResolver(["192.0.2.1"])
        policy, state = _policy("dns+ipv4://example.test:80", resolver)
        first = policy.check(state, 2)
        second = policy.check(state, 3)
        self.assertFalse(first.required)
        self.assertIs(first, second)
        self.assertEqual(resolver.calls, 1)  # construction only


class TestRefreshOutcome(unittest.TestCase):

    def test_success_replaces_address(self):
        resolver = FakeResolver(["192.0.2.1"], ["192.0.2.2"])
        policy, state = _policy("dns+ipv4://example.test:80?dns_interval=3", resolver)
        event = policy.check(state, 4)
        self.assertTrue(event.required)
        self.assertIsNone(event.error)
        self.assertEqual(event.previous_address, "192.0.2.1")
        self.assertEqual(event.new_address, "192.0.2.2")
        self.assertEqual(state.address, "192.0.2.2")
        self.assertEqual(str(state.target), "192.0.2.2:80")

    def test_failure_keeps_previous_address(self):
        resolver = FakeResolver(["192.0.2.1"], UnknownHostname("example.test", "timeout"))
        policy, state = _policy("dns+ipv4://example.test:80?dns_interval=3", resolver)
        with self.assertLogs("tcpping.resolver", "WARNING"):
            event = policy.check(state, 4)
        self.assertTrue(event.required)
        self.assertIsInstance(event.error, UnknownHostname)
        self.assertIsNone(event.new_address)
        self.assertEqual(state.address, "192.0.2.1")

    def test_wrong_family_only_is_a_failure(self):
        resolver = FakeResolver(["192.0.2.1"], ["2001:db8::1"])
        policy, state = _policy("dns+ipv4://example.test:80?dns_interval=3", resolver)
        with self.assertLogs("tcpping.resolver", "WARNING"):
            event = policy.check(state, 4)
        self.assertIsNotNone(event.error)
        self.assertEqual(state.address, "192.0.2.1")


class TestHostnameResolver(unittest.TestCase):
    """Verify the dnspython wrapper without network access."""

    def setUp(self):
        patcher = mock.patch("tcpping.resolver.dns.resolver.Resolver")
        self.dns_class = patcher.start()
        self.addCleanup(patcher.stop)
        self.dns = self.dns_class.return_value

    def test_literal_address_short_circuits(self):
        resolver = HostnameResolver()
        self.assertEqual(resolver.resolve("192.0.2.1"), ["192.0.2.1"])
        self.dns_class.assert_not_called()

    def test_lifetime_is_three_seconds(self):
        resolver = HostnameResolver()
        self.dns.resolve.return_value = []
        resolver.resolve("example.test")
        self.assertEqual(self.dns.lifetime, 3.0)
        self.assertEqual(self.dns.timeout, 3.0)

    def test_dns_resolver_built_once(self):
        resolver = HostnameResolver()
        self.dns.resolve.return_value = [mock.Mock(address="192.0.2.9")]
        resolver.resolve("example.test")
        resolver.resolve("example.test")
        self.dns_class.assert_called_once_with()

    def test_record_type_by_family(self):
        resolver = HostnameResolver()
        self.dns.resolve.return_value = [mock.Mock(address="2001:db8::5")]
        self.assertEqual(resolver.resolve("example.test", ipv6=True), ["2001:db8::5"])
        self.dns.resolve.assert_called_once_with("example.test", "AAAA")

    def test_nxdomain_maps_to_unknown_hostname(self):
        resolver = HostnameResolver()
        self.dns.resolve.side_effect = dns.resolver.NXDOMAIN()
        with mock.patch("tcpping.resolver.socket.getaddrinfo", side_effect=socket.gaierror(-2, "Name or service not known")):
            with self.assertRaises(UnknownHostname) as ctx:
                resolver.resolve("missing.test")
        self.assertEqual(ctx.exception.reason, "nxdomain")

    def test_nxdomain_falls_back_to_hosts_file(self):
        resolver = HostnameResolver()
        self.dns.resolve.side_effect = dns.resolver.NXDOMAIN()
        infos = [
            (socket.AF_INET, socket.SOCK_STREAM, 6, "", ("127.0.0.1", 0)),
            (socket.AF_INET, socket.SOCK_STREAM, 6, "", ("127.0.0.1", 0)),
        ]
        with mock.patch("tcpping.resolver.socket.getaddrinfo", return_value=infos) as getaddrinfo:
            self.assertEqual(resolve_address(resolver, "localhost"), "127.0.0.1")
        getaddrinfo.assert_called_once_with("localhost", None, socket.AF_INET, socket.SOCK_STREAM)

    def test_no_answer_falls_back_for_ipv6(self):
        resolver = HostnameResolver()
        self.dns.resolve.side_effect = dns.resolver.NoAnswer()
        infos = [(socket.AF_INET6, socket.SOCK_STREAM, 6, "", ("::1", 0, 0, 0))]
        with mock.patch("tcpping.resolver.socket.getaddrinfo", return_value=infos) as getaddrinfo:
            self.assertEqual(resolver.resolve("sidecar", ipv6=True), ["::1"])
        self.assertEqual(getaddrinfo.call_args[0][2], socket.AF_INET6)

    def test_missing_resolver_configuration_uses_system_lookup(self):
        self.dns_class.side_effect = dns.resolver.NoResolverConfiguration()
        resolver = HostnameResolver()
        infos = [(socket.AF_INET, socket.SOCK_STREAM, 6, "", ("10.0.0.7", 0))]
        with mock.patch("tcpping.resolver.socket.getaddrinfo", return_value=infos):
            self.assertEqual(resolver.resolve("db.internal"), ["10.0.0.7"])

    def test_timeout_does_not_fall_back(self):
        resolver = HostnameResolver()
        self.dns.resolve.side_effect = dns.exception.Timeout()
        with mock.patch("tcpping.resolver.socket.getaddrinfo") as getaddrinfo:
            with self.assertRaises(UnknownHostname):
                resolver.resolve("slow.test")
        getaddrinfo.assert_not_called()


if __name__ == "__main__":
    unittest.main()
