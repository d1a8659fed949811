"""Tests for post endpoints."""
from collections.abc import Callable

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from models.post import Post
from models.user import User
from services.feed_service import FEED_PAGE_SIZE
from tests.factories import (
    LONG_DESCRIPTION,
    LONG_HTML,
    bookmark,
    create_post,
    create_tag,
    create_user,
)


@pytest.fixture
async def alice(db_session: AsyncSession) -> User:
    return await create_user(db_session, "api-alice")


@pytest.fixture
async def bob(db_session: AsyncSession) -> User:
    return await create_user(db_session, "api-bob")


def post_payload(title: str = "A perfectly reasonable title", **overrides) -> dict:  # noqa: ANN003
    payload = {"title": title, "description": LONG_DESCRIPTION, "html": LONG_HTML}
    payload.update(overrides)
    return payload


# =============================================================================
# Feed
# =============================================================================


async def test__list_posts__anonymous_omits_viewer_fields(
    client: AsyncClient,
    act_as: Callable[[User | None], None],
    db_session: AsyncSession,
    alice: User,
) -> None:
    """Anonymous feed entries have no `bookmarked` key and the last page no cursor."""
    await create_post(db_session, alice, "Anonymous feed post number one")
    act_as(None)

    response = await client.get("/posts/")

    assert response.status_code == 200
    data = response.json()
    assert len(data["posts"]) == 1
    assert "bookmarked" not in data["posts"][0]
    assert "next_cursor" not in data
    assert data["posts"][0]["author"]["username"] == "api-alice"


async def test__list_posts__viewer_sees_bookmarked(
    client: AsyncClient,
    act_as: Callable[[User | None], None],
    db_session: AsyncSession,
    alice: User,
    bob: User,
) -> None:
    post = await create_post(db_session, alice, "Post that bob has bookmarked")
    await bookmark(db_session, bob, post)
    act_as(bob)

    response = await client.get("/posts/")

    assert response.json()["posts"][0]["bookmarked"] is True


async def test__list_posts__follows_cursor(
    client: AsyncClient,
    act_as: Callable[[User | None], None],
    db_session: AsyncSession,
    alice: User,
) -> None:
    """Two requests cover a feed of one page plus one post."""
    for i in range(FEED_PAGE_SIZE + 1):
        await create_post(db_session, alice, f"Cursor feed post number {i:02d}")
    act_as(None)

    first = (await client.get("/posts/")).json()
    second = (await client.get("/posts/", params={"cursor": first["next_cursor"]})).json()

    assert len(first["posts"]) == FEED_PAGE_SIZE
    assert len(second["posts"]) == 1
    assert "next_cursor" not in second
    ids = [p["id"] for p in first["posts"] + second["posts"]]
    assert len(set(ids)) == FEED_PAGE_SIZE + 1


async def test__list_posts__bad_cursor_is_empty_page(
    client: AsyncClient,
    act_as: Callable[[User | None], None],
) -> None:
    act_as(None)

    response = await client.get("/posts/", params={"cursor": "garbage"})

    assert response.status_code == 200
    assert response.json() == {"posts": []}


# =============================================================================
# Create / read
# =============================================================================


async def test__create_post__returns_detail(
    client: AsyncClient,
    act_as: Callable[[User | None], None],
    db_session: AsyncSession,
    alice: User,
) -> None:
    tag = await create_tag(db_session, "fastapi")
    act_as(alice)

    response = await client.post("/posts/", json=post_payload(tag_ids=[tag.id]))

    assert response.status_code == 201
    data = response.json()
    assert data["slug"] == "A-perfectly-reasonable-title"
    assert data["author"]["username"] == "api-alice"
    assert [t["name"] for t in data["tags"]] == ["fastapi"]


async def test__create_post__anonymous_unauthorized(
    client: AsyncClient,
    act_as: Callable[[User | None], None],
) -> None:
    act_as(None)

    response = await client.post("/posts/", json=post_payload())

    assert response.status_code == 401


@pytest.mark.parametrize(
    "overrides",
    [
        {"title": "Too short"},
        {"description": "Short description"},
        {"html": "<p>tiny</p>"},
        {"text": "too short text"},
    ],
)
async def test__create_post__validation(
    client: AsyncClient,
    act_as: Callable[[User | None], None],
    alice: User,
    overrides: dict,
) -> None:
    act_as(alice)

    response = await client.post("/posts/", json=post_payload(**overrides))

    assert response.status_code == 422


async def test__create_post__duplicate_slug_conflict(
    client: AsyncClient,
    act_as: Callable[[User | None], None],
    alice: User,
) -> None:
    act_as(alice)
    await client.post("/posts/", json=post_payload())

    response = await client.post("/posts/", json=post_payload("A perfectly reasonable title!"))

    assert response.status_code == 409
    assert response.json()["error"] == "slug_exists"


async def test__create_post__title_without_slug_characters_400(
    client: AsyncClient,
    act_as: Callable[[User | None], None],
    alice: User,
) -> None:
    act_as(alice)

    first = await client.post(
        "/posts/", json=post_payload("日本語のブログ記事のタイトルです、二十文字以上"),
    )
    second = await client.post(
        "/posts/", json=post_payload("Ещё один русский заголовок статьи"),
    )

    assert first.status_code == 400
    assert first.json()["error"] == "invalid_title"
    assert second.status_code == 400
    assert second.json()["error"] == "invalid_title"


async def test__create_post__unknown_tag_not_found(
    client: AsyncClient,
    act_as: Callable[[User | None], None],
    alice: User,
) -> None:
    act_as(alice)

    response = await client.post("/posts/", json=post_payload(tag_ids=[987654]))

    assert response.status_code == 404
    assert response.json()["error"] == "tag_not_found"


async def test__get_post__liked_only_for_viewer(
    client: AsyncClient,
    act_as: Callable[[User | None], None],
    db_session: AsyncSession,
    alice: User,
    bob: User,
) -> None:
    post = await create_post(db_session, alice, "A post to check like state")

    act_as(None)
    anonymous = await client.get(f"/posts/{post.slug}")
    act_as(bob)
    await client.post(f"/posts/{post.id}/like")
    as_bob = await client.get(f"/posts/{post.slug}")

    assert anonymous.status_code == 200
    assert "liked" not in anonymous.json()
    assert as_bob.json()["liked"] is True
    assert as_bob.json()["html"] == LONG_HTML


async def test__get_post__missing_slug_404(
    client: AsyncClient,
    act_as: Callable[[User | None], None],
) -> None:
    act_as(None)

    response = await client.get("/posts/not-a-real-slug")

    assert response.status_code == 404


# =============================================================================
# Likes, bookmarks, reading list
# =============================================================================


async def test__like_post__twice_conflict_and_unlike_idempotent(
    client: AsyncClient,
    act_as: Callable[[User | None], None],
    db_session: AsyncSession,
    alice: User,
    bob: User,
) -> None:
    post = await create_post(db_session, alice, "A post bob likes very much")
    act_as(bob)

    assert (await client.post(f"/posts/{post.id}/like")).status_code == 204
    second = await client.post(f"/posts/{post.id}/like")
    assert second.status_code == 409
    assert second.json() == {
        "detail": f"Post {post.id} is already liked",
        "error": "already_liked",
    }

    assert (await client.delete(f"/posts/{post.id}/like")).status_code == 204
    assert (await client.delete(f"/posts/{post.id}/like")).status_code == 204


async def test__like_post__missing_post_404(
    client: AsyncClient,
    act_as: Callable[[User | None], None],
    bob: User,
) -> None:
    act_as(bob)

    response = await client.post("/posts/987654/like")

    assert response.status_code == 404
    assert response.json()["error"] == "post_not_found"


async def test__bookmark_and_reading_list(
    client: AsyncClient,
    act_as: Callable[[User | None], None],
    db_session: AsyncSession,
    alice: User,
    bob: User,
) -> None:
    posts = [
        await create_post(db_session, alice, f"Reading list api post {i:02d}")
        for i in range(5)
    ]
    act_as(bob)
    for post in posts:
        assert (await client.post(f"/posts/{post.id}/bookmark")).status_code == 204
    duplicate = await client.post(f"/posts/{posts[0].id}/bookmark")
    assert duplicate.status_code == 409

    response = await client.get("/posts/reading-list")

    assert response.status_code == 200
    items = response.json()
    assert [i["post_id"] for i in items] == [p.id for p in reversed(posts)][:4]
    assert items[0]["post"]["slug"] == posts[-1].slug

    assert (await client.delete(f"/posts/{posts[-1].id}/bookmark")).status_code == 204
    after = (await client.get("/posts/reading-list")).json()
    assert posts[-1].id not in [i["post_id"] for i in after]


async def test__reading_list__requires_auth(
    client: AsyncClient,
    act_as: Callable[[User | None], None],
) -> None:
    act_as(None)

    assert (await client.get("/posts/reading-list")).status_code == 401


# =============================================================================
# Comments
# =============================================================================


async def test__comments__submit_and_list_newest_first(
    client: AsyncClient,
    act_as: Callable[[User | None], None],
    db_session: AsyncSession,
    alice: User,
    bob: User,
) -> None:
    post = await create_post(db_session, alice, "A post that collects comments")
    act_as(bob)

    first = await client.post(f"/posts/{post.id}/comments", json={"text": "First!"})
    second = await client.post(f"/posts/{post.id}/comments", json={"text": "Second!"})
    act_as(None)
    listing = await client.get(f"/posts/{post.id}/comments")

    assert first.status_code == 201
    assert first.json()["user"]["name"] == bob.name
    assert [c["id"] for c in listing.json()] == [second.json()["id"], first.json()["id"]]


async def test__comments__too_short_rejected(
    client: AsyncClient,
    act_as: Callable[[User | None], None],
    db_session: AsyncSession,
    alice: User,
) -> None:
    post = await create_post(db_session, alice, "A post with strict comments")
    act_as(alice)

    response = await client.post(f"/posts/{post.id}/comments", json={"text": "hi"})

    assert response.status_code == 422


# =============================================================================
# Featured image
# =============================================================================


async def test__featured_image__author_forbidden_and_missing(
    client: AsyncClient,
    act_as: Callable[[User | None], None],
    db_session: AsyncSession,
    alice: User,
    bob: User,
) -> None:
    post = await create_post(db_session, alice, "A post whose image changes")
    body = {"image_url": "https://images.example.com/photo.jpg"}

    act_as(bob)
    forbidden = await client.patch(f"/posts/{post.id}/featured-image", json=body)
    act_as(alice)
    ok = await client.patch(f"/posts/{post.id}/featured-image", json=body)
    missing = await client.patch("/posts/987654/featured-image", json=body)

    assert forbidden.status_code == 403
    assert forbidden.json()["error"] == "post_not_owned"
    assert ok.status_code == 204
    assert missing.status_code == 404
    await db_session.refresh(post)
    assert post.featured_image == "https://images.example.com/photo.jpg"


async def test__featured_image__invalid_url_rejected(
    client: AsyncClient,
    act_as: Callable[[User | None], None],
    db_session: AsyncSession,
    alice: User,
) -> None:
    post: Post = await create_post(db_session, alice, "A post given a bad image url")
    act_as(alice)

    response = await client.patch(
        f"/posts/{post.id}/featured-image", json={"image_url": "not a url"},
    )

    assert response.status_code == 422


# =============================================================================
# Id bounds
# =============================================================================


@pytest.mark.parametrize(
    ("method", "path"),
    [
        ("POST", "/posts/{id}/like"),
        ("DELETE", "/posts/{id}/like"),
        ("POST", "/posts/{id}/bookmark"),
        ("DELETE", "/posts/{id}/bookmark"),
        ("GET", "/posts/{id}/comments"),
        ("PATCH", "/posts/{id}/featured-image"),
    ],
)
@pytest.mark.parametrize("post_id", [0, 2**31])
async def test__post_routes__id_outside_int4_range_422(
    client: AsyncClient,
    act_as: Callable[[User | None], None],
    alice: User,
    method: str,
    path: str,
    post_id: int,
) -> None:
    """Ids the posts.id column can't hold are rejected before reaching the database."""
    act_as(alice)

    response = await client.request(
        method,
        path.format(id=post_id),
        json={"image_url": "https://images.example.com/photo.jpg"},
    )

    assert response.status_code == 422


async def test__comments__id_outside_int4_range_on_submit_422(
    client: AsyncClient,
    act_as: Callable[[User | None], None],
    alice: User,
) -> None:
    act_as(alice)

    response = await client.post(f"/posts/{2**31}/comments", json={"text": "hello there"})

    assert response.status_code == 422


async def test__create_post__tag_id_outside_int4_range_422(
    client: AsyncClient,
    act_as: Callable[[User | None], None],
    alice: User,
) -> None:
    act_as(alice)

    response = await client.post("/posts/", json=post_payload(tag_ids=[2**31]))

    assert response.status_code == 422


async def test__post_routes__largest_int4_id_is_not_found(
    client: AsyncClient,
    act_as: Callable[[User | None], None],
    alice: User,
) -> None:
    act_as(alice)

    like = await client.post(f"/posts/{2**31 - 1}/like")
    comments = await client.get(f"/posts/{2**31 - 1}/comments")

    assert like.status_code == 404
    assert comments.json() == []
