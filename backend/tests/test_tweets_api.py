"""Integration tests for tweets, retweets and likes."""

from __future__ import annotations


def post_tweet(client, headers, text="Hello world"):
    response = client.post("/api/v1/tweets", json={"text": text}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["tweet"]


def test_create_and_read_tweet(client, create_user, auth_headers):
    alice = create_user("alice")

    tweet = post_tweet(client, auth_headers(alice))

    assert tweet["author"]["id"] == alice
    assert tweet["likesCount"] == 0
    assert tweet["retweetedTweet"] is None

    fetched = client.get(f"/api/v1/tweets/{tweet['id']}").json()["tweet"]
    assert fetched["text"] == "Hello world"


def test_empty_tweet_is_rejected(client, create_user, auth_headers):
    alice = create_user("alice")

    response = client.post("/api/v1/tweets", json={"text": "  "}, headers=auth_headers(alice))

    assert response.status_code == 422
    assert response.json()["message"] == "text should not be empty"


def test_only_author_edits_and_deletes(client, create_user, auth_headers):
    alice = create_user("alice")
    bob = create_user("bob")
    tweet = post_tweet(client, auth_headers(alice))

    edit = client.put(f"/api/v1/tweets/{tweet['id']}", json={"text": "hijacked"}, headers=auth_headers(bob))
    assert edit.status_code == 403
    assert edit.json()["message"] == "Not an owner of a tweet"
    assert client.delete(f"/api/v1/tweets/{tweet['id']}", headers=auth_headers(bob)).status_code == 403

    own_edit = client.put(f"/api/v1/tweets/{tweet['id']}", json={"text": "edited"}, headers=auth_headers(alice))
    assert own_edit.json()["tweet"]["text"] == "edited"

    assert client.delete(f"/api/v1/tweets/{tweet['id']}", headers=auth_headers(alice)).status_code == 200
    assert client.get(f"/api/v1/tweets/{tweet['id']}").status_code == 404


def test_like_and_unlike(client, create_user, auth_headers):
    alice = create_user("alice")
    bob = create_user("bob")
    tweet = post_tweet(client, auth_headers(alice))

    liked = client.put(f"/api/v1/tweets/like/{tweet['id']}", headers=auth_headers(bob))
    assert liked.status_code == 200
    body = liked.json()["tweet"]
    assert body["likesCount"] == 1
    assert body["isLiked"] is True
    assert [user["id"] for user in body["likes"]] == [bob]

    twice = client.put(f"/api/v1/tweets/like/{tweet['id']}", headers=auth_headers(bob))
    assert twice.status_code == 422
    assert twice.json()["message"] == "Already liked"

    as_alice = client.get(f"/api/v1/tweets/{tweet['id']}", headers=auth_headers(alice)).json()["tweet"]
    assert as_alice["isLiked"] is False

    likers = client.get(f"/api/v1/tweets/likes/{tweet['id']}").json()["users"]
    assert [user["id"] for user in likers] == [bob]

    assert client.put(f"/api/v1/tweets/unlike/{tweet['id']}", headers=auth_headers(bob)).status_code == 200
    again = client.put(f"/api/v1/tweets/unlike/{tweet['id']}", headers=auth_headers(bob))
    assert again.status_code == 422
    assert again.json()["message"] == "Already unliked"


def test_retweet_counts_and_nesting(client, create_user, auth_headers):
    alice = create_user("alice")
    bob = create_user("bob")
    original = post_tweet(client, auth_headers(alice))

    response = client.post(
        "/api/v1/tweets/retweet",
        json={"retweetedTweet": original["id"], "text": "look at this"},
        headers=auth_headers(bob),
    )
    assert response.status_code == 201, response.text
    retweet = response.json()["tweet"]
    assert retweet["retweetedTweet"]["id"] == original["id"]
    assert retweet["retweetedTweet"]["isRetweeted"] is True

    refreshed = client.get(f"/api/v1/tweets/{original['id']}", headers=auth_headers(bob)).json()["tweet"]
    assert refreshed["retweetsCount"] == 1
    assert refreshed["isRetweeted"] is True

    retweets = client.get(f"/api/v1/tweets/retweets/{original['id']}").json()["tweets"]
    assert [tweet["id"] for tweet in retweets] == [retweet["id"]]


def test_feed_contains_followed_authors_only(client, create_user, auth_headers):
    alice = create_user("alice")
    bob = create_user("bob")
    carol = create_user("carol")
    from_bob = post_tweet(client, auth_headers(bob), "from bob")
    post_tweet(client, auth_headers(carol), "from carol")
    client.put(f"/api/v1/users/follow/{bob}", headers=auth_headers(alice))

    feed = client.get("/api/v1/tweets/feed", headers=auth_headers(alice)).json()["tweets"]

    assert [tweet["id"] for tweet in feed] == [from_bob["id"]]


def test_author_tweets_newest_first(client, create_user, auth_headers):
    alice = create_user("alice")
    first = post_tweet(client, auth_headers(alice), "first")
    second = post_tweet(client, auth_headers(alice), "second")

    tweets = client.get(f"/api/v1/tweets/author/{alice}").json()["tweets"]

    assert [tweet["id"] for tweet in tweets] == [second["id"], first["id"]]


def test_likers_carry_follow_flags_for_viewer(client, create_user, auth_headers):
    alice = create_user("alice")
    bob = create_user("bob")
    carol = create_user("carol")
    tweet = post_tweet(client, auth_headers(alice))
    client.put(f"/api/v1/tweets/like/{tweet['id']}", headers=auth_headers(bob))
    client.put(f"/api/v1/users/follow/{bob}", headers=auth_headers(carol))
    client.put(f"/api/v1/users/follow/{carol}", headers=auth_headers(bob))

    likers = client.get(f"/api/v1/tweets/likes/{tweet['id']}", headers=auth_headers(carol)).json()["users"]

    assert likers[0]["id"] == bob
    assert likers[0]["isFollowed"] is True
    assert likers[0]["isFollower"] is True

    anonymous = client.get(f"/api/v1/tweets/likes/{tweet['id']}").json()["users"]
    assert anonymous[0]["isFollowed"] is False
