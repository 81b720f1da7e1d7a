"""
Tests for employer link resolution (redirect hops and direct apply links).
"""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from core.link_resolver import EmployerLinkResolver, find_direct_apply_link
from core.net import host_matches
from crawler.plugins.aerzteblatt import AerzteblattPlugin

AGGREGATORS = ("aerzteblatt.de", "anzeigenvorschau.net")
APPLY_ENDPOINT = "https://aerztestellen.aerzteblatt.de/de/node/98765/apply-external"


def redirect(location, status=302):
    return (status, {"location": location}, "")


def make_resolver(*responses, max_hops=3):
    http_client = MagicMock()
    http_client.fetch = AsyncMock(side_effect=list(responses))
    return EmployerLinkResolver(http_client=http_client, max_hops=max_hops, timeout=8)


class TestHostMatching:

    def test_subdomains_match(self):
        assert host_matches("https://aerztestellen.aerzteblatt.de/de/stelle/1", AGGREGATORS)
        assert host_matches("https://tracking.anzeigenvorschau.net/r?id=1", AGGREGATORS)
        assert not host_matches("https://www.klinikum-siegen.de/karriere", AGGREGATORS)
        assert not host_matches("https://notaerzteblatt.de/", AGGREGATORS)
        assert not host_matches(None, AGGREGATORS)


class TestFollowRedirects:

    @pytest.mark.asyncio
    async def test_third_hop_leaves_aggregator(self):
        resolver = make_resolver(
            redirect("https://tracking.anzeigenvorschau.net/click?id=1"),
            redirect("/redirect?to=employer"),
            redirect("https://karriere.klinikum-siegen.de/stellen/42"),
            redirect("https://should-not-be-requested.example/"),
        )

        resolution = await resolver.follow_redirects(APPLY_ENDPOINT, AGGREGATORS)

        assert resolution.resolved
        assert resolution.url == "https://karriere.klinikum-siegen.de/stellen/42"
        assert resolution.hops == 3
        requested = [c.args[0] for c in resolver.http_client.fetch.call_args_list]
        assert requested == [
            APPLY_ENDPOINT,
            "https://tracking.anzeigenvorschau.net/click?id=1",
            "https://tracking.anzeigenvorschau.net/redirect?to=employer",
        ]
        for call in resolver.http_client.fetch.call_args_list:
            assert call.kwargs["follow_redirects"] is False

    @pytest.mark.asyncio
    async def test_no_location_header(self):
        resolver = make_resolver((200, {}, "<html></html>"))

        resolution = await resolver.follow_redirects(APPLY_ENDPOINT, AGGREGATORS)

        assert not resolution.resolved
        assert resolution.reason == "No redirect found (status: 200)"

    @pytest.mark.asyncio
    async def test_hop_limit(self):
        resolver = make_resolver(
            redirect("https://aerztestellen.aerzteblatt.de/a"),
            redirect("https://aerztestellen.aerzteblatt.de/b"),
            redirect("https://aerztestellen.aerzteblatt.de/c"),
            redirect("https://employer.example/"),
        )

        resolution = await resolver.follow_redirects(APPLY_ENDPOINT, AGGREGATORS)

        assert resolution.reason == "Max hops reached, still on aggregator domain"
        assert resolver.http_client.fetch.await_count == 3

    @pytest.mark.asyncio
    async def test_network_failure_is_a_reason(self):
        resolver = make_resolver(httpx.ConnectTimeout("timed out"))

        resolution = await resolver.follow_redirects(APPLY_ENDPOINT, AGGREGATORS)

        assert not resolution.resolved
        assert "timed out" in resolution.reason


class TestResolve:

    @pytest.mark.asyncio
    async def test_known_apply_endpoint_skips_detail_page(self):
        resolver = make_resolver(redirect("https://karriere.klinikum-siegen.de/stellen/1"))

        resolution = await resolver.resolve(
            "https://aerztestellen.aerzteblatt.de/de/node/98765",
            AGGREGATORS,
            apply_endpoint=APPLY_ENDPOINT,
        )

        assert resolution.url == "https://karriere.klinikum-siegen.de/stellen/1"
        assert resolver.http_client.fetch.await_count == 1

    @pytest.mark.asyncio
    async def test_direct_apply_link_on_detail_page(self):
        page = """
        <a href="/de/stellen">Zurück</a>
        <a href="https://www.klinikum-siegen.de/impressum">Impressum</a>
        <a class="btn-apply" href="https://jobs.klinikum-siegen.de/bewerbung/42">Online bewerben</a>
        """
        resolver = make_resolver((200, {}, page))

        resolution = await resolver.resolve("https://aerztestellen.aerzteblatt.de/de/stelle/x-1", AGGREGATORS)

        assert resolution.url == "https://jobs.klinikum-siegen.de/bewerbung/42"

    @pytest.mark.asyncio
    async def test_board_endpoint_found_on_detail_page(self):
        plugin = AerzteblattPlugin()
        page = '<article id="node-555"><a href="/de/node/555/apply-external">Jetzt bewerben</a></article>'
        resolver = make_resolver(
            (200, {}, page),
            redirect("https://bewerbung.helios-gesundheit.de/job/555"),
        )

        resolution = await resolver.resolve(
            "https://aerztestellen.aerzteblatt.de/de/stelle/x-1",
            plugin.aggregator_domains,
            find_apply_endpoint=plugin.find_apply_endpoint,
        )

        assert resolution.url == "https://bewerbung.helios-gesundheit.de/job/555"
        second_request = resolver.http_client.fetch.call_args_list[1]
        assert second_request.args[0] == "https://aerztestellen.aerzteblatt.de/de/node/555/apply-external"

    @pytest.mark.asyncio
    async def test_detail_page_errors(self):
        resolver = make_resolver((404, {}, "Not found"))
        resolution = await resolver.resolve("https://www.stellenmarkt.de/anzeige1.html", ("stellenmarkt.de",))
        assert resolution.reason == "Detail page returned 404"

        resolver = make_resolver((200, {}, "<p>Bitte per Post bewerben.</p>"))
        resolution = await resolver.resolve("https://www.stellenmarkt.de/anzeige1.html", ("stellenmarkt.de",))
        assert resolution.reason == "No apply link found on detail page"


class TestDirectApplyLink:

    def test_ignores_aggregator_and_non_http_links(self):
        html = """
        <a href="mailto:bewerbung@klinik.de">Per E-Mail bewerben</a>
        <a href="https://www.stellenmarkt.de/bewerben/1">Bewerben</a>
        <a href="https://klinik.de/jobs?apply=1">Zur Stelle</a>
        """
        assert find_direct_apply_link(html, "https://www.stellenmarkt.de/anzeige1.html", ("stellenmarkt.de",)) == (
            "https://klinik.de/jobs?apply=1"
        )
