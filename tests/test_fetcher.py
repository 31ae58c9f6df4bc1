from unittest.mock import MagicMock

import pytest
from yt_dlp.utils import DownloadError

from spotivy.clients.fetcher import AUDIO_FORMAT, VIDEO_FORMAT, MediaFetcher, build_options
from spotivy.core.models import FetchError, Intent, MediaMatch

MATCH = MediaMatch(media_id="abc123", title="Toto - Africa")


def make_factory(write=b"data", error=None):
    factory = MagicMock()
    ydl = factory.return_value.__enter__.return_value

    def download(urls):
        path = factory.call_args.args[0]["outtmpl"].replace("%%", "%")
        with open(path, "wb") as f:
            f.write(write)
        if error:
            raise error

    ydl.download.side_effect = download
    return factory, ydl


class TestBuildOptions:

    def test_video_and_audio_formats(self, temp_dir):
        assert build_options(Intent.VIDEO, temp_dir / "a.mp4")["format"] == VIDEO_FORMAT
        assert build_options(Intent.AUDIO, temp_dir / "a.mp3")["format"] == AUDIO_FORMAT

    def test_audio_is_m4a_only(self, temp_dir):
        assert build_options(Intent.AUDIO, temp_dir / "a.mp3")["format"] == "bestaudio[ext=m4a]"

    def test_audio_format_never_falls_back_to_other_containers(self, temp_dir):
        assert build_options(Intent.AUDIO, temp_dir / "a.mp3")["format"] == "bestaudio[ext=m4a]"

    def test_no_retries_or_resume(self, temp_dir):
        opts = build_options(Intent.VIDEO, temp_dir / "a.mp4")
        assert opts["retries"] == 0
        assert opts["nopart"] is True
        assert opts["continuedl"] is False

    def test_percent_in_name_is_escaped(self, temp_dir):
        opts = build_options(Intent.VIDEO, temp_dir / "100% Pure.mp4")
        assert opts["outtmpl"].endswith("100%% Pure.mp4")


class TestMediaFetcher:

    def test_stream_writes_destination(self, temp_dir):
        factory, ydl = make_factory()
        destination = temp_dir / "Road Trip" / "Toto - Africa.mp4"

        path = MediaFetcher(factory).stream(MATCH, Intent.VIDEO, destination)

        assert path == destination
        assert destination.read_bytes() == b"data"
        ydl.download.assert_called_once_with(["https://www.youtube.com/watch?v=abc123"])

    def test_download_error_removes_partial_file(self, temp_dir):
        factory, _ = make_factory(error=DownloadError("HTTP Error 403"))
        destination = temp_dir / "Toto - Africa.mp3"

        with pytest.raises(FetchError, match="abc123"):
            MediaFetcher(factory).stream(MATCH, Intent.AUDIO, destination)

        assert not destination.exists()

    def test_empty_download_is_failure(self, temp_dir):
        factory, _ = make_factory(write=b"")
        destination = temp_dir / "Toto - Africa.mp4"

        with pytest.raises(FetchError, match="no data"):
            MediaFetcher(factory).stream(MATCH, Intent.VIDEO, destination)

        assert not destination.exists()

    def test_filesystem_error_is_fetch_error(self, temp_dir):
        blocker = temp_dir / "file"
        blocker.write_text("x")
        factory, _ = make_factory()

        with pytest.raises(FetchError):
            MediaFetcher(factory).stream(MATCH, Intent.VIDEO, blocker / "Toto - Africa.mp4")
