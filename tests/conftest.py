"""Common test fixtures: fake resolver and recording sink."""

import asyncio
import io
from typing import Dict, List, Optional, Tuple

import dns.message
import dns.name
import dns.rdataclass
import dns.rdatatype
import dns.resolver
import dns.rrset
import pytest


def make_answer(qname: str, rdtype: str, addresses: List[str], cname: Optional[str] = None):
    """Build a real dnspython Answer for qname, optionally behind one CNAME."""
    query = dns.message.make_query(qname, rdtype)
    response = dns.message.make_response(query)

    rrsets = []
    owner = qname
    if cname:
        rrsets.append(dns.rrset.from_text(f"{qname}.", 300, 'IN', 'CNAME', f"{cname}."))
        owner = cname
    rrsets.append(dns.rrset.from_text(f"{owner}.", 300, 'IN', rdtype, *addresses))

    for rrset in rrsets:
        response.find_rrset(response.answer, rrset.name, rrset.rdclass, rrset.rdtype,
                            create=True).update(rrset)

    return dns.resolver.Answer(
        dns.name.from_text(qname),
        dns.rdatatype.from_text(rdtype),
        dns.rdataclass.IN,
        response,
    )


class FakeResolver:
    """
    Stand-in for dns.asyncresolver.Resolver.

    records: {(qname, rdtype): [addresses]}
    cnames: {qname: canonical name}
    errors: {qname: exception instance}
    delays: {qname: seconds}
    wildcard: {rdtype: [addresses]} answered for any unknown name
    """

    def __init__(self,
                 records: Optional[Dict[Tuple[str, str], List[str]]] = None,
                 cnames: Optional[Dict[str, str]] = None,
                 errors: Optional[Dict[str, BaseException]] = None,
                 delays: Optional[Dict[str, float]] = None,
                 wildcard: Optional[Dict[str, List[str]]] = None,
                 events: Optional[list] = None):
        self.records = records or {}
        self.cnames = cnames or {}
        self.errors = errors or {}
        self.delays = delays or {}
        self.wildcard = wildcard or {}
        self.events = events if events is not None else []
        self.calls: List[Tuple[str, str]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def resolve(self, qname, rdtype='A'):
        self.calls.append((qname, rdtype))
        self.events.append(('resolve', qname))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(qname, 0))
            if qname in self.errors:
                raise self.errors[qname]

            addresses = self.records.get((qname, rdtype))
            if addresses is None:
                if rdtype in self.wildcard and qname not in self.known_names():
                    return make_answer(qname, rdtype, self.wildcard[rdtype])
                if qname in self.known_names():
                    raise dns.resolver.NoAnswer()
                raise dns.resolver.NXDOMAIN()

            return make_answer(qname, rdtype, addresses, cname=self.cnames.get(qname))
        finally:
            self.in_flight -= 1

    def known_names(self):
        return {name for name, _ in self.records}


class BrokenStream(io.StringIO):
    """Stream whose writes fail like a closed pipe."""

    def write(self, text):
        raise BrokenPipeError(32, "Broken pipe")


class RecordingOutput:
    """Sink that keeps everything it receives, for engine tests."""

    def __init__(self, events: Optional[list] = None, fail_writes: bool = False):
        self.events = events if events is not None else []
        self.fail_writes = fail_writes
        self.progress: List[str] = []
        self.records = []
        self.headers_printed = 0

    def print_headers(self):
        self.headers_printed += 1

    def add_result(self, records):
        if self.fail_writes:
            raise OSError(28, "No space left on device")
        records = list(records)
        self.events.append(('result', records[0].name))
        self.records.extend(records)

    def report_progress(self, label):
        self.events.append(('progress', label))
        self.progress.append(label)

    def close(self):
        pass


@pytest.fixture
def events():
    return []


@pytest.fixture
def recording_output(events):
    return RecordingOutput(events)
