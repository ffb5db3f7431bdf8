"""
HTTP tests for the API router.

The TestClient is used without its context manager so the startup hook
(which creates tables in the configured DATABASE_URL) does not run; the
session dependency is pointed at the seeded test database instead.
"""

from types import SimpleNamespace

import httpx
import pytest
from fastapi.testclient import TestClient

from linkbio.api.endpoints import get_ai_service, get_app_settings, get_music_search_service
from linkbio.core.setting import Settings
from linkbio.db.models import AnalyticsDaily, Comment, Link
from linkbio.main import create_app
from linkbio.services.music_search import MusicSearchService

ALICE = {"X-User-Id": "user-alice"}
BOB = {"X-User-Id": "user-bob"}
CAROL = {"X-User-Id": "user-carol"}
STAFF = {"X-User-Id": "user-staff"}


@pytest.fixture
def client(app):
    return TestClient(app)


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


def test_services_use_the_app_settings():
    config = Settings(
        GROQ_API_KEY="sk-test",
        GROQ_MODEL="m-x",
        ITUNES_SEARCH_URL="https://itunes.test/search",
        HTTP_TIMEOUT_SECONDS=3,
    )
    request = SimpleNamespace(app=create_app(config))

    ai_service = get_ai_service(get_app_settings(request))
    assert ai_service.configured is True
    assert ai_service.model == "m-x"

    search_service = get_music_search_service(get_app_settings(request))
    assert search_service.search_url == "https://itunes.test/search"
    assert search_service.timeout == 3


class TestComments:

    def test_post_comment(self, client, sync_session):
        response = client.post("/api/comments", json={"handle": "@Alice", "body": "  Great set!  "}, headers=CAROL)

        assert response.status_code == 201
        data = response.json()
        assert data["author_name"] == "Carol C"
        assert data["body"] == "Great set!"
        assert data["status"] == "published"

        stored = sync_session.get(Comment, data["id"])
        assert stored.user_id == "user-alice"

    def test_bucket_empties_then_refills(self, client, clock):
        payload = {"handle": "alice", "body": "hello there"}
        assert client.post("/api/comments", json=payload, headers=CAROL).status_code == 201
        assert client.post("/api/comments", json=payload, headers=CAROL).status_code == 201

        denied = client.post("/api/comments", json=payload, headers=CAROL)
        assert denied.status_code == 429
        assert denied.json() == {"detail": "Too many comments. Please try again shortly."}

        # Other commenters and other profiles have their own buckets
        assert client.post("/api/comments", json=payload, headers=BOB).status_code == 201

        clock.advance(60)
        assert client.post("/api/comments", json=payload, headers=CAROL).status_code == 201

    def test_cross_origin_rejected(self, client):
        response = client.post(
            "/api/comments",
            json={"handle": "alice", "body": "hello"},
            headers={**CAROL, "Origin": "https://evil.example"},
        )
        assert response.status_code == 403
        assert response.json() == {"detail": "Invalid origin."}

    def test_same_origin_allowed(self, client):
        response = client.post(
            "/api/comments",
            json={"handle": "alice", "body": "hello"},
            headers={**CAROL, "Origin": "http://testserver", "Referer": "http://testserver/alice"},
        )
        assert response.status_code == 201

    def test_requires_user(self, client):
        response = client.post("/api/comments", json={"handle": "alice", "body": "hello"})
        assert response.status_code == 401

    def test_html_rejected(self, client):
        response = client.post("/api/comments", json={"handle": "alice", "body": "<b>hi</b>"}, headers=CAROL)
        assert response.status_code == 422

    def test_comments_disabled(self, client):
        response = client.post("/api/comments", json={"handle": "quiet", "body": "hello"}, headers=CAROL)
        assert response.status_code == 403
        assert response.json()["detail"] == "Comments are unavailable for this profile."


class TestTracking:

    def test_view_is_recorded(self, client, sync_session):
        response = client.post("/api/track/view?handle=alice")
        assert response.status_code == 200
        assert response.json() == {"ok": True}

        row = sync_session.query(AnalyticsDaily).filter_by(user_id="user-alice").one()
        assert row.profile_views == 1

    def test_view_limit_is_per_ip(self, client):
        for _ in range(3):
            assert client.post("/api/track/view?handle=alice").status_code == 200

        denied = client.post("/api/track/view?handle=alice")
        assert denied.status_code == 429
        assert denied.json() == {"detail": "Too many tracking requests."}

        other_ip = client.post("/api/track/view?handle=alice", headers={"X-Forwarded-For": "203.0.113.9"})
        assert other_ip.status_code == 200

    def test_rate_limit_checked_before_handle(self, client):
        for _ in range(3):
            assert client.post("/api/track/view?handle=x").status_code == 400
        assert client.post("/api/track/view?handle=x").status_code == 429

    def test_unknown_handle_still_ok(self, client):
        assert client.post("/api/track/view?handle=nobody").json() == {"ok": True}

    def test_click(self, client, sync_session):
        response = client.post("/api/track/click", json={"linkId": "link-yt"})
        assert response.status_code == 200

        assert sync_session.get(Link, "link-yt").clicks == 1

    def test_click_bad_payload(self, client):
        response = client.post("/api/track/click", content=b"not json")
        assert response.status_code == 400
        assert response.json() == {"detail": "Invalid click payload."}

        assert client.post("/api/track/click", json={"other": 1}).status_code == 400

    def test_click_unknown_link(self, client):
        response = client.post("/api/track/click", json={"linkId": "missing"})
        assert response.status_code == 404
        assert response.json() == {"detail": "Link not found."}


class TestAI:

    def test_fallback_when_not_configured(self, client):
        response = client.post(
            "/api/ai",
            json={"action": "link-label", "vibe": "minimal", "url": "https://www.youtube.com/@alice"},
            headers=ALICE,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["configured"] is False
        assert data["result"]["title"] == "Visit youtube.com"

    def test_limit_per_user(self, client):
        payload = {"action": "bio-polish", "vibe": "creative", "bio": "I make music for fun"}
        assert client.post("/api/ai", json=payload, headers=ALICE).status_code == 200

        denied = client.post("/api/ai", json=payload, headers=ALICE)
        assert denied.status_code == 429
        assert denied.json() == {"detail": "Rate limit reached. Try again in a minute."}

    def test_requires_pro_badge(self, client):
        payload = {"action": "bio-polish", "vibe": "creative", "bio": "I make music for fun"}
        response = client.post("/api/ai", json=payload, headers=BOB)
        assert response.status_code == 403
        assert "Pro badge" in response.json()["detail"]

    def test_invalid_action(self, client):
        response = client.post("/api/ai", json={"action": "write-novel", "vibe": "creative"}, headers=ALICE)
        assert response.status_code == 400
        assert response.json() == {"detail": "Invalid AI request."}

    def test_unsafe_prompt(self, client):
        payload = {"action": "bio-generate", "vibe": "creative", "interests": "phishing kits", "length": "short"}
        response = client.post("/api/ai", json=payload, headers=ALICE)
        assert response.status_code == 400


class TestMusic:

    def test_resolve(self, client):
        response = client.get("/api/music/resolve", params={"url": "https://youtu.be/dQw4w9WgXcQ"})
        assert response.status_code == 200
        data = response.json()
        assert data["provider"] == "youtube"
        assert data["embed_url"] == "https://www.youtube.com/watch?v=dQw4w9WgXcQ"
        assert data["embeddable"] is False
        assert data["converted"] is False

    def test_resolve_blank(self, client):
        data = client.get("/api/music/resolve").json()
        assert data["provider"] == "unknown"
        assert data["embed_url"] == ""

    def test_search_links(self, client):
        links = client.get("/api/music/search-links", params={"q": "lofi"}).json()["links"]
        assert [link["label"] for link in links] == ["Spotify", "YouTube", "SoundCloud", "Apple Music"]

    def test_search(self, client, app):
        def handler(request):
            return httpx.Response(200, json={"results": [
                {"trackId": 7, "trackName": "Song", "artistName": "Band", "previewUrl": "https://p/7.m4a"},
            ]})

        mock = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        app.dependency_overrides[get_music_search_service] = lambda: MusicSearchService(
            "https://itunes.test/search", client=mock
        )

        response = client.get("/api/music/search", params={"q": "song"}, headers=CAROL)
        assert response.status_code == 200
        assert response.json()["results"][0]["id"] == "7"

        assert client.get("/api/music/search", params={"q": "song"}).status_code == 401

    def test_validate_track(self, client):
        response = client.post(
            "/api/music/tracks/validate",
            json={"title": "Demo", "embedUrl": "https://files.catbox.moe/demo.mp3"},
            headers=ALICE,
        )
        assert response.status_code == 200
        assert response.json()["embed"]["embeddable"] is True

    def test_validate_track_rejects_unknown_host(self, client):
        response = client.post(
            "/api/music/tracks/validate",
            json={"title": "Demo", "embedUrl": "https://example.com/demo.mp3"},
            headers=ALICE,
        )
        assert response.status_code == 422


class TestLinksAndProfiles:

    def test_validate_link(self, client):
        response = client.post(
            "/api/links/validate",
            json={"title": "Channel", "url": "https://www.youtube.com/@alice"},
            headers=ALICE,
        )
        assert response.status_code == 200
        assert response.json() == {
            "url": "https://www.youtube.com/@alice",
            "icon": "https://www.youtube.com/favicon.ico",
        }

    def test_validate_link_rejects_other_sites(self, client):
        response = client.post(
            "/api/links/validate",
            json={"title": "Blog", "url": "https://example.com"},
            headers=ALICE,
        )
        assert response.status_code == 422

    def test_public_profile(self, client):
        response = client.get("/api/profiles/alice")
        assert response.status_code == 200
        assert [track["id"] for track in response.json()["tracks"]] == ["track-mp3", "track-spotify"]
        heading = response.json()["rich_text"][0]
        assert heading == {"type": "h2", "content": [{"type": "text", "text": "Hi", "href": ""}], "items": []}

    def test_private_profile_not_found(self, client):
        response = client.get("/api/profiles/hidden")
        assert response.status_code == 404
        assert response.json() == {"detail": "Profile not found."}

    def test_invalid_handle(self, client):
        assert client.get("/api/profiles/no").status_code == 400


class TestAdmin:

    def test_get_badges(self, client):
        response = client.get("/api/admin/badges", params={"handle": "alice"}, headers=STAFF)
        assert response.status_code == 200
        assert response.json()["badges"] == ["pro"]

    def test_non_admin_forbidden(self, client):
        response = client.get("/api/admin/badges", params={"handle": "alice"}, headers=CAROL)
        assert response.status_code == 403

    def test_set_badges(self, client):
        response = client.post(
            "/api/admin/badges",
            json={"handle": "carol", "badges": ["verified", "pro", "verified"]},
            headers=STAFF,
        )
        assert response.status_code == 200
        assert response.json()["badges"] == ["verified", "pro"]

    def test_unknown_badge_rejected(self, client):
        response = client.post(
            "/api/admin/badges",
            json={"handle": "carol", "badges": ["emperor"]},
            headers=STAFF,
        )
        assert response.status_code == 422


    def test_update_profile(self, client):
        response = client.post(
            "/api/admin/profile",
            json={"handle": "carol", "badges": ["verified"], "isPublic": False, "commentsEnabled": False},
            headers=STAFF,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["badges"] == ["verified"]
        assert data["is_public"] is False
        assert data["comments_enabled"] is False
        assert client.get("/api/profiles/carol").status_code == 404

    def test_ban_hides_profile(self, client):
        response = client.post(
            "/api/admin/moderation",
            json={"handle": "carol", "action": "ban", "reason": "  Spam links  "},
            headers=STAFF,
        )
        assert response.status_code == 200
        assert response.json()["is_banned"] is True
        assert response.json()["banned_reason"] == "Spam links"
        assert client.get("/api/profiles/carol").status_code == 404

        client.post(
            "/api/admin/moderation",
            json={"handle": "carol", "action": "unban", "reason": "Appeal accepted"},
            headers=STAFF,
        )
        assert client.get("/api/profiles/carol").status_code == 200

    def test_wipe_links(self, client, sync_session):
        response = client.post(
            "/api/admin/moderation",
            json={"handle": "alice", "action": "wipe_links", "reason": "Scam links"},
            headers=STAFF,
        )
        assert response.status_code == 200
        assert sync_session.query(Link).count() == 0
        assert client.get("/api/profiles/alice").json()["links"] == []

    @pytest.mark.parametrize("payload", [
        {"handle": "carol", "action": "delete_account", "reason": "Because"},
        {"handle": "carol", "action": "ban", "reason": "no"},
        {"handle": "carol", "action": "ban"},
    ])
    def test_moderation_payload_validated(self, client, payload):
        response = client.post("/api/admin/moderation", json=payload, headers=STAFF)
        assert response.status_code == 422

    def test_moderation_forbidden_and_not_found(self, client):
        payload = {"handle": "alice", "action": "clear_bio", "reason": "Slurs in bio"}
        forbidden = client.post("/api/admin/moderation", json=payload, headers=CAROL)
        assert forbidden.status_code == 403
        assert forbidden.json() == {"detail": "Forbidden."}

        missing = client.post("/api/admin/moderation", json={**payload, "handle": "nobody"}, headers=STAFF)
        assert missing.status_code == 404
        assert missing.json() == {"detail": "Profile not found."}

    def test_admin_users(self, client):
        listed = client.get("/api/admin/users", headers=STAFF)
        assert listed.status_code == 200
        assert [admin["handle"] for admin in listed.json()["admins"]] == ["staff_one"]

        granted = client.post("/api/admin/users", json={"handle": "carol", "makeAdmin": True}, headers=STAFF)
        assert granted.status_code == 200
        assert granted.json()["is_admin"] is True

        listed = client.get("/api/admin/users", headers=CAROL)
        assert [admin["user_id"] for admin in listed.json()["admins"]] == ["user-carol", "user-staff"]

    def test_admin_cannot_revoke_self(self, client):
        response = client.post("/api/admin/users", json={"handle": "staff_one", "makeAdmin": False}, headers=STAFF)
        assert response.status_code == 400
        assert response.json() == {"detail": "Admins cannot revoke their own access."}
