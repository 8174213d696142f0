#!/usr/bin/env python3
"""
Seed script — creates a small, lively dataset for exploring the API.

Creates:
  • 8 users (synced as if the identity gateway had sent them)
  • A follow graph (each user follows 2-4 others)
  • 3 posts per user
  • Likes and comments across posts, which fan out notifications

Run against a running API:
  python scripts/seed_data.py --api-url http://localhost:8000

Requests carry the caller id in X-User-Id, the header the gateway would add.
"""
import argparse
import json
import random
import time
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Optional


IDENTITY_HEADER = "X-User-Id"

BASE_USERS = [
    ("alice_ai", "Alice Chen"),
    ("bob_builder", "Bob Martinez"),
    ("carol_codes", "Carol Singh"),
    ("dave_designs", "Dave Kim"),
    ("eve_engineer", "Eve Johnson"),
    ("frank_frames", "Frank Williams"),
    ("grace_graphs", "Grace Li"),
    ("henry_hikes", "Henry Brown"),
]

SAMPLE_POSTS = [
    "Just shipped a new feature to production 🚀",
    "Morning run done. 10k before coffee.",
    "Hot take: tabs vs spaces doesn't matter, consistency does.",
    "Anyone else reading on the train today?",
    "Finally fixed that flaky test. It was a timezone.",
    "New photo set from the weekend hike is up.",
    "Coffee number three. Send help.",
    "Pair programming beats code review for gnarly bugs.",
    "What's everyone listening to this week?",
    "Small wins: inbox zero for the first time this month.",
    "Rain all day, perfect excuse to refactor.",
    "Conference talk accepted! Slides due in two weeks.",
]

SAMPLE_COMMENTS = [
    "Love this!",
    "So true 😂",
    "Congrats!",
    "Same here.",
    "Tell me more",
    "Great point.",
]


@dataclass
class ApiClient:
    base_url: str

    def request(self, method: str, path: str, user_id: Optional[str] = None, data: Optional[dict] = None) -> dict:
        url = f"{self.base_url}{path}"
        headers = {"Content-Type": "application/json"}
        if user_id:
            headers[IDENTITY_HEADER] = user_id
        body = json.dumps(data).encode() if data is not None else None
        req = urllib.request.Request(url, data=body, headers=headers, method=method)
        try:
            with urllib.request.urlopen(req, timeout=10) as resp:
                return json.loads(resp.read())
        except urllib.error.HTTPError as e:
            print(f"  HTTP {e.code} on {method} {path}: {e.read().decode()}")
            return {}

    def get(self, path: str, user_id: Optional[str] = None) -> dict:
        return self.request("GET", path, user_id)

    def post(self, path: str, user_id: Optional[str] = None, data: Optional[dict] = None) -> dict:
        return self.request("POST", path, user_id, data)


def wait_for_api(client: ApiClient, retries: int = 15) -> None:
    print(f"Waiting for API at {client.base_url} ...")
    for _ in range(retries):
        try:
            if client.get("/health").get("status") == "ok":
                print("  API is ready!\n")
                return
        except urllib.error.URLError:
            pass
        time.sleep(3)
    raise RuntimeError(f"API not reachable at {client.base_url} after {retries} retries")


def main(api_url: str) -> None:
    client = ApiClient(api_url)
    wait_for_api(client)

    # ── Sync users ────────────────────────────────────────────────────────
    print("Syncing users...")
    user_ids: list[str] = []
    for username, display_name in BASE_USERS:
        uid = f"seed_{username}"
        result = client.post("/users/sync", uid, {"username": username, "display_name": display_name})
        if result.get("id"):
            user_ids.append(uid)
            print(f"  ✓ {username} ({uid})")
        else:
            print(f"  ✗ Failed to sync {username}")

    if len(user_ids) < 2:
        print("Not enough users — aborting")
        return

    # ── Follow graph ──────────────────────────────────────────────────────
    print("\nCreating follow relationships...")
    follows = 0
    for follower_id in user_ids:
        others = [u for u in user_ids if u != follower_id]
        for followee_id in random.sample(others, k=min(random.randint(2, 4), len(others))):
            if client.post(f"/users/{followee_id}/follow", follower_id).get("success"):
                follows += 1
    print(f"  ✓ {follows} follows")

    # ── Posts ─────────────────────────────────────────────────────────────
    print("\nCreating posts...")
    post_ids: list[str] = []
    pool = random.sample(SAMPLE_POSTS, k=len(SAMPLE_POSTS)) * 2
    for i, user_id in enumerate(user_ids):
        for j in range(3):
            result = client.post("/posts/", user_id, {"content": pool[(i * 3 + j) % len(pool)]})
            if result.get("id"):
                post_ids.append(result["id"])
    print(f"  ✓ {len(post_ids)} posts created")

    # ── Likes and comments ────────────────────────────────────────────────
    print("\nAdding likes and comments...")
    likes = comments = 0
    for post_id in post_ids:
        for user_id in random.sample(user_ids, k=random.randint(0, 4)):
            if client.post(f"/posts/{post_id}/like", user_id).get("success"):
                likes += 1
        if random.random() < 0.4:
            commenter = random.choice(user_ids)
            if client.post(f"/posts/{post_id}/comments", commenter, {"content": random.choice(SAMPLE_COMMENTS)}):
                comments += 1
    print(f"  ✓ {likes} likes, {comments} comments")

    # ── Summary ───────────────────────────────────────────────────────────
    u = user_ids[0]
    unread = client.get("/notifications/unread-count", u).get("count", 0)
    print("\n" + "=" * 60)
    print(f"Seed complete! {BASE_USERS[0][0]} has {unread} unread notifications.\n")
    print("# Read the feed:")
    print(f"  curl -s '{api_url}/posts/?page=1&limit=10' | python3 -m json.tool\n")
    print(f"# Notifications for '{BASE_USERS[0][0]}':")
    print(f"  curl -s -H '{IDENTITY_HEADER}: {u}' '{api_url}/notifications/' | python3 -m json.tool\n")
    print("# Who to follow:")
    print(f"  curl -s -H '{IDENTITY_HEADER}: {u}' '{api_url}/users/suggested' | python3 -m json.tool\n")
    print("# Check Jaeger traces: http://localhost:16686")
    print(f"# Metrics: {api_url}/metrics")
    print("=" * 60)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed the Social Engagement API")
    parser.add_argument("--api-url", default="http://localhost:8000", help="API base URL")
    args = parser.parse_args()
    main(args.api_url)
