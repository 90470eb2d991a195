"""Tests for the follow store and its live-status state machine."""

import json
import os
from unittest.mock import patch

import pytest

from core.follow_store import FollowStore
from shared.followed_streamer import Platform
from tests.helpers import make_streamer


def _write_follows(path, records):
    path.write_text(json.dumps(records), encoding="utf-8")


def _record(**overrides):
    record = {
        "platform": "CHZZK",
        "streamerId": "abc123",
        "streamerName": "Alpha",
        "profileImageUrl": "https://img.example/alpha.png",
        "channelUrl": "https://chzzk.naver.com/abc123",
        "isLive": True,
        "lastChecked": "2026-01-01T10:00:00+09:00",
        "followedAt": "2025-12-01T10:00:00+09:00",
    }
    record.update(overrides)
    return record


class TestLoad:

    def test_missing_file_yields_empty_list(self, follows_path):
        store = FollowStore(follows_path)
        assert store.load() == []
        assert not follows_path.exists()

    def test_empty_file_yields_empty_list(self, follows_path):
        follows_path.write_text("   \n", encoding="utf-8")
        store = FollowStore(follows_path)
        assert store.load() == []
        assert follows_path.exists()

    def test_live_flags_reset_on_load(self, follows_path):
        _write_follows(
            follows_path,
            [_record(), _record(platform="SOOP", streamerId="soopbj", streamerName="Bravo")],
        )
        store = FollowStore(follows_path)
        store.load()

        follows = store.get_all()
        assert len(follows) == 2
        assert all(not streamer.is_live for streamer in follows)

    def test_reset_is_not_written_back_until_next_save(self, follows_path):
        _write_follows(follows_path, [_record(isLive=True)])
        store = FollowStore(follows_path)
        store.load()

        on_disk = json.loads(follows_path.read_text(encoding="utf-8"))
        assert on_disk[0]["isLive"] is True

    def test_malformed_json_is_backed_up(self, follows_path):
        follows_path.write_text("{not json", encoding="utf-8")
        store = FollowStore(follows_path)

        assert store.load() == []
        backup = follows_path.with_name("follows.json.bak")
        assert backup.exists()
        assert backup.read_text(encoding="utf-8") == "{not json"
        assert not follows_path.exists()

    def test_non_list_root_is_backed_up(self, follows_path):
        follows_path.write_text('{"platform": "CHZZK"}', encoding="utf-8")
        store = FollowStore(follows_path)

        assert store.load() == []
        assert store.backup_path.exists()

    def test_unknown_platform_is_treated_as_corrupt(self, follows_path):
        _write_follows(follows_path, [_record(platform="Twitch")])
        store = FollowStore(follows_path)

        assert store.load() == []
        assert store.backup_path.exists()

    def test_existing_backup_is_replaced(self, follows_path):
        follows_path.with_name("follows.json.bak").write_text("old", encoding="utf-8")
        follows_path.write_text("[", encoding="utf-8")
        store = FollowStore(follows_path)

        store.load()
        assert store.backup_path.read_text(encoding="utf-8") == "["

    def test_duplicate_records_keep_first(self, follows_path):
        _write_follows(follows_path, [_record(streamerName="First"), _record(streamerName="Second")])
        store = FollowStore(follows_path)

        follows = store.load()
        assert [streamer.display_name for streamer in follows] == ["First"]

    def test_pascal_case_keys_and_legacy_platform_label(self, follows_path):
        _write_follows(
            follows_path,
            [
                {
                    "Platform": "치지직",
                    "StreamerId": "abc123",
                    "StreamerName": "Alpha",
                    "ProfileImageUrl": "",
                    "ChannelUrl": "https://chzzk.naver.com/abc123",
                    "IsLive": False,
                    "LastChecked": "0001-01-01T00:00:00",
                    "FollowedAt": "2025-12-01T10:00:00.1234567+09:00",
                }
            ],
        )
        store = FollowStore(follows_path)

        (streamer,) = store.load()
        assert streamer.platform is Platform.CHZZK
        assert streamer.last_checked is None
        assert streamer.followed_at.microsecond == 123456


class TestSave:

    def test_round_trips_entries(self, store, follows_path, clock):
        store.add(make_streamer(name="Alpha"))

        reloaded = FollowStore(follows_path)
        (streamer,) = reloaded.load()
        assert streamer.display_name == "Alpha"
        assert streamer.channel_url == "https://chzzk.naver.com/abc123"

    def test_written_document_uses_camel_case_keys(self, store, follows_path):
        store.add(make_streamer())

        (record,) = json.loads(follows_path.read_text(encoding="utf-8"))
        assert set(record) == {
            "platform",
            "streamerId",
            "streamerName",
            "profileImageUrl",
            "channelUrl",
            "isLive",
            "lastChecked",
            "followedAt",
        }
        assert record["platform"] == "CHZZK"
        assert record["lastChecked"] is None

    def test_transient_failure_is_retried(self, store, follows_path):
        real_replace = os.replace
        calls = []

        def flaky_replace(src, dst):
            calls.append(dst)
            if len(calls) == 1:
                raise PermissionError("file is locked")
            return real_replace(src, dst)

        with patch("core.follow_store.os.replace", side_effect=flaky_replace):
            assert store.save([make_streamer()]) is True

        assert len(calls) == 2
        assert follows_path.exists()

    def test_gives_up_after_bounded_retries(self, store):
        with patch("core.follow_store.os.replace", side_effect=PermissionError("locked")) as replace, patch(
            "core.follow_store.time.sleep"
        ) as sleep:
            assert store.save() is False

        assert replace.call_count == 3
        assert sleep.call_count == 2

    def test_failure_never_raises_from_add(self, store):
        with patch("core.follow_store.os.replace", side_effect=PermissionError("locked")):
            assert store.add(make_streamer()) is True
        assert store.is_following(Platform.CHZZK, "abc123")


class TestMembership:

    def test_duplicate_add_is_rejected(self, store):
        assert store.add(make_streamer()) is True
        assert store.add(make_streamer(name="Renamed")) is False
        assert len(store) == 1

    def test_same_id_on_other_platform_is_allowed(self, store):
        assert store.add(make_streamer(Platform.CHZZK, "same"))
        assert store.add(make_streamer(Platform.SOOP, "same"))
        assert len(store) == 2

    def test_remove_missing_returns_false(self, store):
        store.add(make_streamer())
        assert store.remove(Platform.SOOP, "nobody") is False
        assert len(store) == 1

    def test_remove_persists_immediately(self, store, follows_path):
        store.add(make_streamer())
        assert store.remove("CHZZK", "abc123") is True

        assert json.loads(follows_path.read_text(encoding="utf-8")) == []
        assert not store.is_following(Platform.CHZZK, "abc123")

    def test_is_following_accepts_strings(self, store):
        store.add(make_streamer(Platform.SOOP, "soopbj"))
        assert store.is_following("soop", "soopbj")
        assert not store.is_following("SOOP", "SOOPBJ")


class TestUpdateLiveStatus:

    def test_offline_to_live_notifies_once(self, store):
        store.add(make_streamer())

        first = store.update_live_status(Platform.CHZZK, "abc123", True)
        second = store.update_live_status(Platform.CHZZK, "abc123", True)

        assert (first, second) == (True, False)

    @pytest.mark.parametrize(
        "sequence, expected",
        [
            ([True, False, True], [True, False, True]),
            ([False, False, True], [False, False, True]),
            ([True, True, False, False, True], [True, False, False, False, True]),
        ],
    )
    def test_only_edges_notify(self, store, sequence, expected):
        store.add(make_streamer())
        results = [store.update_live_status(Platform.CHZZK, "abc123", value) for value in sequence]
        assert results == expected

    def test_records_last_checked_and_persists(self, store, follows_path, clock):
        store.add(make_streamer())

        store.update_live_status(Platform.CHZZK, "abc123", True)

        streamer = store.get(Platform.CHZZK, "abc123")
        assert streamer.is_live is True
        assert streamer.last_checked == clock.current
        (record,) = json.loads(follows_path.read_text(encoding="utf-8"))
        assert record["isLive"] is True
        assert record["lastChecked"] == clock.current.isoformat()

    def test_unknown_entry_is_ignored(self, store, follows_path):
        assert store.update_live_status(Platform.CHZZK, "ghost", True) is False
        assert not follows_path.exists()

    def test_edge_fires_again_after_restart(self, follows_path, clock):
        store = FollowStore(follows_path, clock=clock)
        store.load()
        store.add(make_streamer())
        assert store.update_live_status(Platform.CHZZK, "abc123", True) is True

        restarted = FollowStore(follows_path, clock=clock)
        restarted.load()
        assert restarted.update_live_status(Platform.CHZZK, "abc123", True) is True


class TestUpdateProfile:

    def test_changes_are_saved(self, store, follows_path):
        store.add(make_streamer(name="Old"))

        assert store.update_profile(Platform.CHZZK, "abc123", display_name="New") is True

        (record,) = json.loads(follows_path.read_text(encoding="utf-8"))
        assert record["streamerName"] == "New"

    def test_empty_or_identical_values_are_ignored(self, store):
        store.add(make_streamer(name="Same"))
        assert store.update_profile(Platform.CHZZK, "abc123", display_name="Same", profile_image_url="") is False

    def test_unknown_entry(self, store):
        assert store.update_profile(Platform.SOOP, "ghost", display_name="x") is False


class TestGetAll:

    def test_live_first_then_by_name(self, store):
        for streamer_id, name in (("1", "charlie"), ("2", "Bravo"), ("3", "alpha"), ("4", "Delta")):
            store.add(make_streamer(streamer_id=streamer_id, name=name))
        store.update_live_status(Platform.CHZZK, "1", True)
        store.update_live_status(Platform.CHZZK, "4", True)

        names = [streamer.display_name for streamer in store.get_all()]
        assert names == ["Delta", "charlie", "Bravo", "alpha"]

    def test_sorted_in_place(self, store):
        store.add(make_streamer(streamer_id="1", name="Zulu"))
        store.add(make_streamer(streamer_id="2", name="Alpha"))

        first = store.get_all()
        store.update_live_status(Platform.CHZZK, "1", True)
        second = store.get_all()

        assert first is second
        assert first[0].display_name == "Zulu"

    def test_snapshot_is_a_copy(self, store):
        store.add(make_streamer())
        snapshot = store.snapshot()
        assert snapshot == store.get_all()
        assert snapshot is not store.get_all()
