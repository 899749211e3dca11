from __future__ import annotations

from adapters.tweet_mapper import build_author, build_post


def _payload() -> dict:
    return {
        "id": 1234567890123456789,
        "id_str": "1234567890123456789",
        "text": "Short version… https://t.co/abc",
        "truncated": True,
        "in_reply_to_user_id": None,
        "in_reply_to_user_id_str": None,
        "is_quote_status": False,
        "user": {
            "id": 10,
            "id_str": "10",
            "name": "Alice",
            "screen_name": "alice",
            "profile_image_url_https": "https://pbs.twimg.com/alice.jpg",
            "profile_link_color": "1DA1F2",
        },
        "entities": {"user_mentions": [], "urls": [], "hashtags": []},
        "extended_tweet": {
            "full_text": "The whole long text @bob #tag https://t.co/abc",
            "entities": {
                "user_mentions": [{"screen_name": "bob", "name": "Bob", "indices": [20, 24]}],
                "urls": [],
                "hashtags": [{"text": "tag", "indices": [25, 29]}],
            },
            "extended_entities": {
                "media": [
                    {
                        "type": "video",
                        "media_url_https": "https://pbs.twimg.com/thumb.jpg",
                        "video_info": {
                            "duration_millis": 12000,
                            "variants": [
                                {"content_type": "video/mp4", "url": "https://video.twimg.com/a.mp4", "bitrate": 832000},
                                {"content_type": "application/x-mpegURL", "url": "https://video.twimg.com/a.m3u8"},
                            ],
                        },
                    }
                ]
            },
        },
    }


def test_maps_extended_post() -> None:
    post = build_post(_payload())

    assert post is not None
    assert post.post_id == "1234567890123456789"
    assert post.author.user_id == "10"
    assert post.author.accent_color == "1DA1F2"
    assert post.author.avatar_url == "https://pbs.twimg.com/alice.jpg"
    assert post.in_reply_to_user_id is None
    assert post.extended.full_text.startswith("The whole long text")
    assert post.extended.entities.user_mentions[0].indices == (20, 24)
    assert post.extended.entities.hashtags[0].text == "tag"
    media = post.extended.media[0]
    assert media.type == "video"
    assert media.video_info.duration_millis == 12000
    assert media.video_info.variants[1].bitrate is None


def test_maps_nested_retweet_and_quote() -> None:
    payload = {
        "id_str": "2",
        "text": "RT @bob: hi",
        "user": {"id_str": "10", "name": "Alice", "screen_name": "alice"},
        "in_reply_to_user_id": 20,
        "is_quote_status": True,
        "retweeted_status": {"id_str": "3", "text": "hi", "user": {"id_str": "20", "screen_name": "bob"}},
        "quoted_status": {"id_str": "4", "text": "quoted", "user": {"id_str": "30", "screen_name": "carol"}},
    }

    post = build_post(payload)

    assert post.retweeted_status.post_id == "3"
    assert post.retweeted_status.author.name == "bob"
    assert post.quoted_status.author.screen_name == "carol"
    assert post.is_quote_status is True
    assert post.in_reply_to_user_id == "20"


def test_control_messages_have_no_author() -> None:
    post = build_post({"delete": {"status": {"id_str": "5"}}})

    assert post is not None
    assert post.author is None
    assert build_post("keep-alive") is None
    assert build_post(None) is None


def test_bad_indices_are_dropped() -> None:
    post = build_post(
        {
            "id_str": "6",
            "user": {"id_str": "10", "screen_name": "alice"},
            "entities": {"hashtags": [{"text": "x", "indices": [1]}, {"text": "y", "indices": ["a", "b"]}]},
        }
    )

    assert [tag.indices for tag in post.entities.hashtags] == [None, None]


def test_author_requires_an_id() -> None:
    assert build_author({"screen_name": "ghost"}) is None
    assert build_author({"id": 7, "screen_name": "seven"}).user_id == "7"
