import httpx
import respx

from pulse_validator.modules.validator.service import StreamValidatorService

DIRECT_URL = "https://radio.test/live.mp3"
MASTER_URL = "https://x.test/live/master.m3u8"
LOW_URL = "https://x.test/live/seg/low.m3u8"
HIGH_URL = "https://x.test/live/seg/high.m3u8"

MASTER_PLAYLIST = "#EXTM3U\n#EXT-X-STREAM-INF:BANDWIDTH=64000\nseg/low.m3u8\n#EXT-X-STREAM-INF:BANDWIDTH=128000\nseg/high.m3u8\n"


class TestDirectStreams:
    async def test_reachable_stream_is_valid(self, validator: StreamValidatorService):
        with respx.mock:
            route = respx.get(DIRECT_URL).mock(return_value=httpx.Response(200))

            assert await validator.validate(DIRECT_URL) is True
            assert route.call_count == 1

    async def test_unreachable_stream_is_invalid(self, validator: StreamValidatorService):
        with respx.mock:
            route = respx.get(DIRECT_URL).mock(side_effect=httpx.ConnectError)

            assert await validator.validate(DIRECT_URL) is False
            assert route.call_count == 1


class TestManifests:
    async def test_only_first_entry_is_requested(self, validator: StreamValidatorService):
        with respx.mock(assert_all_called=False) as respx_mock:
            master = respx_mock.get(MASTER_URL).mock(
                return_value=httpx.Response(200, text=MASTER_PLAYLIST)
            )
            low = respx_mock.get(LOW_URL).mock(return_value=httpx.Response(200))
            high = respx_mock.get(HIGH_URL).mock(return_value=httpx.Response(200))

            assert await validator.validate(MASTER_URL) is True
            # Once for the reachability probe, once for the manifest body
            assert master.call_count == 2
            assert low.call_count == 1
            assert high.call_count == 0

    async def test_verdict_is_the_first_entry_verdict(self, validator: StreamValidatorService):
        with respx.mock(assert_all_called=False) as respx_mock:
            respx_mock.get(MASTER_URL).mock(
                return_value=httpx.Response(200, text=MASTER_PLAYLIST)
            )
            respx_mock.get(LOW_URL).mock(return_value=httpx.Response(404))
            high = respx_mock.get(HIGH_URL).mock(return_value=httpx.Response(200))

            assert await validator.validate(MASTER_URL) is False
            assert high.call_count == 0

    async def test_empty_manifest_is_invalid(self, validator: StreamValidatorService):
        with respx.mock:
            respx.get(MASTER_URL).mock(
                return_value=httpx.Response(200, text="#EXTM3U\n#EXT-X-ENDLIST\n")
            )

            assert await validator.validate(MASTER_URL) is False
            assert len(respx.calls) == 2

    async def test_unreachable_manifest_is_never_parsed(self, validator: StreamValidatorService):
        with respx.mock:
            master = respx.get(MASTER_URL).mock(return_value=httpx.Response(500))

            assert await validator.validate(MASTER_URL) is False
            assert master.call_count == 1


class TestTrace:
    async def test_direct_stream_trace(self, validator: StreamValidatorService):
        lines: list[str] = []
        with respx.mock:
            respx.get(DIRECT_URL).mock(return_value=httpx.Response(200))

            assert await validator.validate(DIRECT_URL, trace=lines.append) is True

        assert lines == [
            "Initial URL check: OK",
            "Non-HLS stream, using initial check result",
        ]

    async def test_manifest_trace_lists_entries(self, validator: StreamValidatorService):
        lines: list[str] = []
        with respx.mock:
            respx.get(MASTER_URL).mock(
                return_value=httpx.Response(200, text=MASTER_PLAYLIST)
            )
            respx.get(LOW_URL).mock(return_value=httpx.Response(200))

            await validator.validate(MASTER_URL, trace=lines.append)

        assert lines == [
            "Initial URL check: OK",
            "Detected HLS stream, parsing manifest...",
            "Found 2 stream URLs in manifest:",
            f"1. {LOW_URL}",
            f"2. {HIGH_URL}",
            "Stream URL check: OK",
        ]
