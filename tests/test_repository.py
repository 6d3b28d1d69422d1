import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from gallery.exceptions import (
    AlreadyLikedException,
    ImageNotFoundException,
    ValidationException,
)
from gallery.image_service.models import Category, Image
from gallery.image_service.repository import ImageRepository


def make_image(**overrides) -> Image:
    fields = dict(
        title="Sunset",
        image_url="https://cdn.example.com/images/sunset.png",
        storage_id="images/sunset.png",
        artist_id="u-alice",
        artist_username="alice",
        file_size=123,
        mime_type="image/png",
    )
    fields.update(overrides)
    return Image(**fields)


# ------------------------------
# insert / get
# ------------------------------

def test_insert_assigns_timestamps_and_round_trips(image_repo):
    stored = image_repo.insert(make_image(title="  Sunset  ", tags=["sky", "red"], category=Category.PAINTING))

    fetched = image_repo.get_by_id(stored.image_id)
    assert fetched.title == "Sunset"
    assert fetched.tags == ["sky", "red"]
    assert fetched.category is Category.PAINTING
    assert fetched.likes == set()
    assert fetched.likes_count == 0
    assert fetched.views == 0
    assert fetched.created_at == stored.created_at


@pytest.mark.parametrize("field", ["title", "image_url", "storage_id", "artist_id", "artist_username"])
def test_insert_rejects_missing_required_fields(image_repo, field):
    with pytest.raises(ValidationException):
        image_repo.insert(make_image(**{field: "   "}))


def test_get_by_id_missing(image_repo):
    assert image_repo.get("nope") is None
    with pytest.raises(ImageNotFoundException):
        image_repo.get_by_id("nope")


# ------------------------------
# queries
# ------------------------------

def test_find_by_artist_username_newest_first(image_repo):
    first = image_repo.insert(make_image(title="one"))
    second = image_repo.insert(make_image(title="two"))
    image_repo.insert(make_image(title="other", artist_id="u-bob", artist_username="bob"))

    found = image_repo.find_by_artist_username("alice")
    assert [im.image_id for im in found] == [second.image_id, first.image_id]
    assert image_repo.find_by_artist_username("nobody") == []


def test_sample_random_tolerates_count_above_population(image_repo):
    ids = {image_repo.insert(make_image(title=f"img {i}")).image_id for i in range(5)}

    sample = image_repo.sample_random(20)
    assert len(sample) == 5
    assert {im.image_id for im in sample} == ids


def test_sample_random_limits_to_count(image_repo):
    for i in range(6):
        image_repo.insert(make_image(title=f"img {i}"))
    assert len(image_repo.sample_random(3)) == 3


def test_list_page_slices_newest_first(image_repo):
    inserted = [image_repo.insert(make_image(title=f"img {i}")) for i in range(50)]
    newest_first = [im.image_id for im in reversed(inserted)]

    first_page, total = image_repo.list_page(1, 20)
    assert total == 50
    assert [im.image_id for im in first_page] == newest_first[:20]

    last_page, total = image_repo.list_page(3, 20)
    assert len(last_page) == 10
    assert [im.image_id for im in last_page] == newest_first[40:]


def test_list_page_out_of_range_is_empty(image_repo):
    image_repo.insert(make_image())
    items, total = image_repo.list_page(7, 20)
    assert items == []
    assert total == 1


def test_list_page_rejects_non_positive(image_repo):
    with pytest.raises(ValidationException):
        image_repo.list_page(0, 20)


# ------------------------------
# atomic counters
# ------------------------------

def test_add_like_and_duplicate(image_repo):
    image = image_repo.insert(make_image())

    liked = image_repo.add_like(image.image_id, "u-bob")
    assert liked.likes == {"u-bob"}
    assert liked.likes_count == 1

    with pytest.raises(AlreadyLikedException):
        image_repo.add_like(image.image_id, "u-bob")
    assert image_repo.get_by_id(image.image_id).likes == {"u-bob"}


def test_add_like_missing_image(image_repo):
    with pytest.raises(ImageNotFoundException):
        image_repo.add_like("nope", "u-bob")


def test_remove_like_non_member_is_noop(image_repo):
    image = image_repo.insert(make_image())
    image_repo.add_like(image.image_id, "u-bob")

    after = image_repo.remove_like(image.image_id, "u-carol")
    assert after.likes == {"u-bob"}
    assert after.likes_count == 1


def test_remove_last_like_empties_set(image_repo):
    image = image_repo.insert(make_image())
    image_repo.add_like(image.image_id, "u-bob")

    after = image_repo.remove_like(image.image_id, "u-bob")
    assert after.likes == set()
    assert after.likes_count == 0


def test_remove_like_missing_image(image_repo):
    with pytest.raises(ImageNotFoundException):
        image_repo.remove_like("nope", "u-bob")


def test_like_is_a_single_conditional_update(mocker):
    db = mocker.Mock()
    db.images.update_item.return_value = {"Attributes": make_image(likes={"u-bob"}, likes_count=1).to_item()}
    repo = ImageRepository(db)

    assert repo.add_like("img-1", "u-bob").likes_count == 1

    db.images.update_item.assert_called_once()
    kwargs = db.images.update_item.call_args.kwargs
    assert kwargs["Key"] == {"image_id": "img-1"}
    assert "ADD #likes :liker, #likes_count :one" in kwargs["UpdateExpression"]
    assert "NOT contains(#likes, :user_id)" in kwargs["ConditionExpression"]
    db.images.get_item.assert_not_called()
    db.images.put_item.assert_not_called()


def test_concurrent_likes_from_different_users_all_count(image_repo):
    image = image_repo.insert(make_image())
    likers = [f"u-fan-{i}" for i in range(10)]
    start = threading.Barrier(len(likers))

    def like(user_id):
        start.wait()
        return image_repo.add_like(image.image_id, user_id)

    with ThreadPoolExecutor(max_workers=len(likers)) as pool:
        results = list(pool.map(like, likers))

    assert all(r.image_id == image.image_id for r in results)
    stored = image_repo.get_by_id(image.image_id)
    assert stored.likes == set(likers)
    assert stored.likes_count == len(stored.likes) == len(likers)


def test_each_thread_gets_its_own_resource(db):
    seen = []
    worker = threading.Thread(target=lambda: seen.append(db.resource))
    worker.start()
    worker.join()

    assert db.resource is db.resource
    assert seen[0] is not db.resource
    assert seen[0].Table("Images").table_status == "ACTIVE"


def test_increment_views(image_repo):
    image = image_repo.insert(make_image())
    for _ in range(3):
        image_repo.increment_views(image.image_id)
    assert image_repo.get_by_id(image.image_id).views == 3


def test_increment_views_missing_image(image_repo):
    with pytest.raises(ImageNotFoundException):
        image_repo.increment_views("nope")


# ------------------------------
# delete
# ------------------------------

def test_delete_twice_second_is_not_found(image_repo):
    image = image_repo.insert(make_image())
    image_repo.delete(image.image_id)
    with pytest.raises(ImageNotFoundException):
        image_repo.delete(image.image_id)
    assert image_repo.get(image.image_id) is None
