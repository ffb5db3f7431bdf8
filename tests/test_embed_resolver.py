"""
Tests for music URL classification and provider search links.
"""

import pytest

from linkbio.services.embed_resolver import (
    EmbedProvider,
    get_music_provider_search_links,
    resolve_music_embed_url,
)


class TestDirectAudio:

    def test_mp3_suffix(self):
        result = resolve_music_embed_url("https://example.com/track.mp3")
        assert result.provider is EmbedProvider.audio
        assert result.embeddable is True
        assert result.embed_url == "https://example.com/track.mp3"

    def test_extension_before_query_string(self):
        result = resolve_music_embed_url("https://cdn.example.com/a/b.M4A?token=abc")
        assert result.provider is EmbedProvider.audio

    def test_audio_fast_path_does_not_need_a_valid_url(self):
        result = resolve_music_embed_url("  my song.flac  ")
        assert result.provider is EmbedProvider.audio
        assert result.embed_url == "my song.flac"

    def test_filename_query_parameter(self):
        result = resolve_music_embed_url("https://dl.example.com/get?id=9&filename=mix.ogg")
        assert result.provider is EmbedProvider.audio
        assert result.embeddable

    def test_file_query_parameter(self):
        result = resolve_music_embed_url("https://dl.example.com/get?file=mix.opus&x=1")
        assert result.provider is EmbedProvider.audio

    def test_itunes_preview_host(self):
        url = "https://audio-ssl.itunes.apple.com/itunes-assets/AudioPreview/preview"
        assert resolve_music_embed_url(url).provider is EmbedProvider.audio

    def test_profile_music_storage_prefix(self):
        url = "https://abc.supabase.co/storage/v1/object/public/profile-music/user/upload"
        result = resolve_music_embed_url(url)
        assert result.provider is EmbedProvider.audio
        assert result.embeddable


class TestProviders:

    def test_youtu_be_short_link(self):
        result = resolve_music_embed_url("https://youtu.be/dQw4w9WgXcQ")
        assert result.provider is EmbedProvider.youtube
        assert result.embed_url == "https://www.youtube.com/watch?v=dQw4w9WgXcQ"
        assert result.embeddable is False

    @pytest.mark.parametrize("url", [
        "https://www.youtube.com/watch?v=dQw4w9WgXcQ&t=10",
        "https://m.youtube.com/watch?v=dQw4w9WgXcQ",
        "https://youtube.com/embed/dQw4w9WgXcQ",
        "https://www.youtube.com/shorts/dQw4w9WgXcQ",
        "https://WWW.YOUTUBE.COM/live/dQw4w9WgXcQ",
    ])
    def test_youtube_variants_are_canonicalised(self, url):
        result = resolve_music_embed_url(url)
        assert result.provider is EmbedProvider.youtube
        assert result.embed_url == "https://www.youtube.com/watch?v=dQw4w9WgXcQ"

    def test_youtube_without_video_id_is_unknown(self):
        result = resolve_music_embed_url("https://www.youtube.com/@somechannel")
        assert result.provider is EmbedProvider.unknown

    def test_spotify_strips_locale_prefix(self):
        result = resolve_music_embed_url("https://open.spotify.com/intl-de/track/abc123")
        assert result.provider is EmbedProvider.spotify
        assert result.embed_url == "https://open.spotify.com/track/abc123"
        assert result.embeddable is False
        assert "Spotify" in result.hint

    def test_spotify_drops_query(self):
        result = resolve_music_embed_url("https://open.spotify.com/album/xyz?si=123")
        assert result.embed_url == "https://open.spotify.com/album/xyz"

    def test_spotify_root_falls_through_to_unknown(self):
        result = resolve_music_embed_url("https://open.spotify.com/intl-de/")
        assert result.provider is EmbedProvider.unknown

    def test_soundcloud(self):
        url = "https://soundcloud.com/artist/track"
        result = resolve_music_embed_url(url)
        assert result.provider is EmbedProvider.soundcloud
        assert result.embed_url == url
        assert not result.embeddable

    def test_soundcloud_short_domain(self):
        assert resolve_music_embed_url("https://snd.sc/abc").provider is EmbedProvider.soundcloud

    def test_apple_music(self):
        result = resolve_music_embed_url("https://music.apple.com/us/album/x/123")
        assert result.provider is EmbedProvider.apple
        assert result.embeddable is False

    def test_apple_music_embed_host(self):
        result = resolve_music_embed_url("https://embed.music.apple.com/us/album/x/123")
        assert result.provider is EmbedProvider.apple

    def test_unrecognised_host(self):
        result = resolve_music_embed_url("https://example.com/artist")
        assert result.provider is EmbedProvider.unknown
        assert "direct audio URL" in result.hint


class TestDegenerateInput:

    def test_not_a_url(self):
        result = resolve_music_embed_url("not a url")
        assert result.provider is EmbedProvider.unknown
        assert result.embeddable is False
        assert result.hint == "URL format looks invalid."

    @pytest.mark.parametrize("raw", ["", "   ", "\n\t"])
    def test_blank_input_prompts_for_url(self, raw):
        result = resolve_music_embed_url(raw)
        assert result.provider is EmbedProvider.unknown
        assert result.embeddable is False
        assert result.embed_url == ""
        assert result.hint.startswith("Paste")

    @pytest.mark.parametrize("raw", ["http://[::1", "javascript:alert(1)", "://nohost", "http://"])
    def test_malformed_input_never_raises(self, raw):
        result = resolve_music_embed_url(raw)
        assert result.provider is EmbedProvider.unknown
        assert not result.embeddable

    @pytest.mark.parametrize("raw", [
        "https://exa mple.com/x",
        "https://youtube.com:99999/watch?v=abc",
        "https://you tube.com/watch?v=abc",
    ])
    def test_malformed_hosts_and_ports_are_invalid(self, raw):
        result = resolve_music_embed_url(raw)
        assert result.provider is EmbedProvider.unknown
        assert result.hint == "URL format looks invalid."

    @pytest.mark.parametrize("raw", [
        "https://youtu.be/<script>",
        "https://www.youtube.com/watch?v=<script>",
        "https://www.youtube.com/embed/<script>",
    ])
    def test_youtube_id_is_percent_encoded(self, raw):
        result = resolve_music_embed_url(raw)
        assert result.provider is EmbedProvider.youtube
        assert result.embed_url == "https://www.youtube.com/watch?v=%3Cscript%3E"

    def test_converted_is_always_false(self):
        for raw in ("", "x", "https://a.com/a.mp3", "https://youtu.be/abc", "https://open.spotify.com/track/1"):
            assert resolve_music_embed_url(raw).converted is False

    def test_embeddable_only_for_audio(self):
        for raw in ("https://a.com/a.wav", "https://youtu.be/abc", "https://snd.sc/x", "nope"):
            result = resolve_music_embed_url(raw)
            assert result.embeddable == (result.provider is EmbedProvider.audio)

    def test_resolve_is_idempotent(self):
        url = "https://www.youtube.com/shorts/abc"
        assert resolve_music_embed_url(url) == resolve_music_embed_url(url)

    def test_to_dict_uses_plain_provider_string(self):
        data = resolve_music_embed_url("https://youtu.be/abc").to_dict()
        assert data["provider"] == "youtube"
        assert set(data) == {"provider", "embed_url", "embeddable", "converted", "hint"}


class TestSearchLinks:

    def test_blank_query_has_no_links(self):
        assert get_music_provider_search_links("  ") == []

    def test_links_are_percent_encoded(self):
        links = get_music_provider_search_links(" daft punk & friends ")
        assert [link.label for link in links] == ["Spotify", "YouTube", "SoundCloud", "Apple Music"]
        assert links[0].href == "https://open.spotify.com/search/daft%20punk%20%26%20friends"
        assert links[1].href.endswith("search_query=daft%20punk%20%26%20friends")
