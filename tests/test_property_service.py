"""Tests for the owner-scoped property lifecycle."""

from datetime import datetime, timedelta
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock

from conftest import make_upload, stored_path
from property_api.core.exceptions import PersistenceError
from property_api.models.enums import PropertyType
from property_api.models.property import Property
from property_api.schemas.base import PaginationParams
from property_api.schemas.property import PropertyCreate, PropertyListFilters, PropertyUpdate
from property_api.services.property import (
    PropertyService,
    changed_fields,
    format_location,
    parse_include,
    serialize_property,
)
from property_api.services.storage import ImageUpload


async def create(service: PropertyService, payload: dict[str, Any], images=()) -> dict[str, Any]:
    result = await service.create(PropertyCreate.model_validate(payload), images)
    assert result.success, result.message
    return result.data["property"]


def bare_property(**overrides: Any) -> Property:
    values = {
        "id": "prop-1",
        "name": "Bare",
        "property_type": PropertyType.HOUSE,
        "accommodates": 1,
        "bedrooms": 0,
        "beds": 0,
        "bathrooms": 0,
        "amenities": {},
        "policies": {},
        "images": [],
        "is_active": True,
        "created_at": datetime(2024, 1, 1, 12, 0),
    }
    values.update(overrides)
    return Property(**values)


class TestDerivedFields:
    """Tests for location and days_since_creation."""

    def test_location_from_address(self) -> None:
        prop = bare_property(street="1 Main St", city="Tahoe", country="US")

        assert format_location(prop) == "Tahoe, US"

    def test_location_placeholder(self) -> None:
        assert format_location(bare_property()) == "Location not specified"

    def test_days_since_creation(self) -> None:
        prop = bare_property()

        data = serialize_property(prop, now=prop.created_at + timedelta(days=3, hours=5))

        assert data["days_since_creation"] == 3
        assert data["location"] == "Location not specified"
        assert data["address"] is None
        assert data["amenities"]["pool"] is False

    def test_changed_fields(self) -> None:
        current = {"name": "A", "bedrooms": 2, "amenities": {"wifi": False}}

        changes = changed_fields(current, {"name": "A", "bedrooms": 3, "amenities": {"wifi": True}})

        assert changes == {"bedrooms": 3, "amenities": {"wifi": True}}

    def test_parse_include(self) -> None:
        assert parse_include(None) == set()
        assert parse_include("ical_connections, bogus") == {"ical_connections"}


class TestCreate:
    """Tests for PropertyService.create."""

    async def test_create_with_images(
        self, owner_service: PropertyService, cabin_payload: dict[str, Any], image_root: Path
    ) -> None:
        result = await owner_service.create(
            PropertyCreate.model_validate(cabin_payload),
            [make_upload("front.jpg", b"front"), make_upload("back.png", b"back")],
        )

        assert result.success is True
        prop = result.data["property"]
        assert result.data["meta"]["images_count"] == 2
        assert result.data["meta"]["images_failed"] == []
        assert len(prop["images"]) == 2
        assert prop["images"][0].endswith(".jpg")
        assert prop["images"][1].endswith(".png")
        assert all(ref.startswith(f"/property-images/{prop['id']}/") for ref in prop["images"])
        assert prop["location"] == "Tahoe, US"
        assert prop["is_active"] is True
        assert prop["days_since_creation"] == 0
        assert stored_path(image_root, prop["images"][0]).read_bytes() == b"front"

    async def test_create_without_images(
        self, owner_service: PropertyService, cabin_payload: dict[str, Any]
    ) -> None:
        result = await owner_service.create(PropertyCreate.model_validate(cabin_payload))

        assert result.success is True
        assert result.data["property"]["images"] == []
        assert result.data["meta"]["images_count"] == 0

    async def test_partial_upload_failure_keeps_order(
        self, owner_service: PropertyService, cabin_payload: dict[str, Any]
    ) -> None:
        uploads = [
            make_upload("first.jpg"),
            ImageUpload(filename="broken.jpg"),
            make_upload("third.gif"),
        ]

        result = await owner_service.create(PropertyCreate.model_validate(cabin_payload), uploads)

        assert result.success is True
        images = result.data["property"]["images"]
        assert len(images) == 2
        assert images[0].endswith(".jpg")
        assert images[1].endswith(".gif")
        assert [f["filename"] for f in result.data["meta"]["images_failed"]] == ["broken.jpg"]
        assert "1 image(s) failed" in result.message

    async def test_failed_image_write_back_undoes_create(
        self, owner_service: PropertyService, cabin_payload: dict[str, Any], image_root: Path
    ) -> None:
        owner_service.repository.update_scoped = AsyncMock(
            side_effect=PersistenceError("Database error during update")
        )

        result = await owner_service.create(PropertyCreate.model_validate(cabin_payload), [make_upload()])

        assert result.success is False
        assert result.error == "PERSISTENCE_ERROR"
        listed = await owner_service.list_properties()
        assert listed.data["meta"]["total"] == 0
        namespace = image_root / "property-images"
        assert not namespace.exists() or list(namespace.iterdir()) == []

    async def test_persistence_failure(
        self, owner_service: PropertyService, cabin_payload: dict[str, Any]
    ) -> None:
        owner_service.repository.create = AsyncMock(side_effect=PersistenceError("Database error during create"))

        result = await owner_service.create(PropertyCreate.model_validate(cabin_payload))

        assert result.success is False
        assert result.error == "PERSISTENCE_ERROR"
        assert result.message.startswith("Failed to create property")


class TestList:
    """Tests for PropertyService.list_properties."""

    async def test_scope_filters_and_summary(
        self,
        owner_service: PropertyService,
        other_owner_service: PropertyService,
        cabin_payload: dict[str, Any],
        apartment_payload: dict[str, Any],
    ) -> None:
        await create(owner_service, cabin_payload)
        await create(owner_service, apartment_payload)
        await create(other_owner_service, {**cabin_payload, "name": "Not mine"})

        result = await owner_service.list_properties(PropertyListFilters(city="tahoe"), PaginationParams())

        assert result.success is True
        properties = result.data["properties"]
        assert [p["name"] for p in properties] == ["Lakeview Cabin"]
        assert properties[0]["location"] == "Tahoe, US"
        assert result.data["meta"]["total"] == 1
        assert result.data["meta"]["has_next_page"] is False
        assert result.data["summary"]["by_property_type"] == {"CABIN": 1, "APARTMENT": 1}
        assert result.data["summary"]["by_city"] == {"Tahoe": 1, "San Francisco": 1}
        assert result.message == "Successfully retrieved 1 properties"

    async def test_pagination_meta(self, owner_service: PropertyService, cabin_payload: dict[str, Any]) -> None:
        for i in range(3):
            await create(owner_service, {**cabin_payload, "name": f"Cabin {i}"})

        result = await owner_service.list_properties(pagination=PaginationParams(page=1, limit=2))

        meta = result.data["meta"]
        assert len(result.data["properties"]) == 2
        assert (meta["total"], meta["pages"], meta["has_next_page"], meta["has_previous_page"]) == (
            3, 2, True, False,
        )

    async def test_empty(self, owner_service: PropertyService) -> None:
        result = await owner_service.list_properties()

        assert result.success is True
        assert result.data["properties"] == []
        assert result.data["summary"] == {"by_property_type": {}, "by_city": {}}
        assert result.message == "No properties found matching the criteria"

    async def test_unexpected_error(self, owner_service: PropertyService) -> None:
        owner_service.repository.find = AsyncMock(side_effect=RuntimeError("boom"))

        result = await owner_service.list_properties()

        assert result.success is False
        assert result.error == "INTERNAL_ERROR"
        assert result.message == "Failed to retrieve properties"


class TestGet:
    """Tests for PropertyService.get."""

    async def test_get_with_include(self, owner_service: PropertyService, cabin_payload: dict[str, Any]) -> None:
        created = await create(owner_service, cabin_payload)

        result = await owner_service.get(created["id"], include="ical_connections,unknown")

        assert result.success is True
        assert result.data["property"]["id"] == created["id"]

    async def test_other_owner_gets_not_found(
        self,
        owner_service: PropertyService,
        other_owner_service: PropertyService,
        cabin_payload: dict[str, Any],
    ) -> None:
        created = await create(owner_service, cabin_payload)

        result = await other_owner_service.get(created["id"])

        assert result.success is False
        assert result.error == "NOT_FOUND"
        assert result.details == {"property_id": created["id"]}
        assert created["id"] in result.message

    async def test_persistence_error(self, owner_service: PropertyService) -> None:
        owner_service.repository.find_by_id = AsyncMock(
            side_effect=PersistenceError("Database error during find_by_id")
        )

        result = await owner_service.get("anything")

        assert result.success is False
        assert result.error == "PERSISTENCE_ERROR"


class TestUpdate:
    """Tests for PropertyService.update."""

    async def test_no_changes(self, owner_service: PropertyService, cabin_payload: dict[str, Any]) -> None:
        created = await create(owner_service, cabin_payload)

        result = await owner_service.update(
            created["id"], PropertyUpdate(name="Lakeview Cabin", amenities={})
        )

        assert result.success is True
        assert result.data["meta"]["changes_count"] == 0
        assert result.data["meta"]["updated_fields"] == []
        assert "no changes detected" in result.message

    async def test_scalar_and_address_change(
        self, owner_service: PropertyService, cabin_payload: dict[str, Any]
    ) -> None:
        created = await create(owner_service, cabin_payload)

        result = await owner_service.update(
            created["id"],
            PropertyUpdate.model_validate(
                {
                    "bedrooms": 3,
                    "address": {"street": "9 Ridge Rd", "city": "Reno", "country": "US"},
                }
            ),
        )

        assert result.success is True
        prop = result.data["property"]
        assert prop["bedrooms"] == 3
        assert prop["location"] == "Reno, US"
        assert prop["address"]["state_province"] is None
        assert sorted(result.data["meta"]["updated_fields"]) == ["address", "bedrooms"]
        assert result.message == "Property updated successfully with 2 change(s)"

    async def test_partial_amenities_keep_defaults(
        self, owner_service: PropertyService, apartment_payload: dict[str, Any]
    ) -> None:
        created = await create(owner_service, apartment_payload)

        result = await owner_service.update(created["id"], PropertyUpdate.model_validate({"amenities": {"pool": True}}))

        amenities = result.data["property"]["amenities"]
        assert amenities["pool"] is True
        assert amenities["wifi"] is False
        assert set(amenities) == set(created["amenities"])

    async def test_replace_images(
        self, owner_service: PropertyService, cabin_payload: dict[str, Any], image_root: Path
    ) -> None:
        created = await create(owner_service, cabin_payload, [make_upload("a.jpg"), make_upload("b.jpg")])
        first, second = created["images"]

        result = await owner_service.update(
            created["id"], images=[make_upload("c.png", b"new")], delete_images=[first]
        )

        assert result.success is True
        images = result.data["property"]["images"]
        assert images[0] == second
        assert images[1].endswith(".png")
        assert len(images) == 2
        assert result.data["meta"]["updated_fields"] == ["images"]
        assert result.data["meta"]["images_added"] == 1
        assert result.data["meta"]["images_removed"] == 1
        assert not stored_path(image_root, first).exists()
        assert stored_path(image_root, second).exists()
        assert stored_path(image_root, images[1]).read_bytes() == b"new"

    async def test_delete_only(self, owner_service: PropertyService, cabin_payload: dict[str, Any]) -> None:
        created = await create(owner_service, cabin_payload, [make_upload("a.jpg"), make_upload("b.jpg")])
        first, second = created["images"]

        result = await owner_service.update(created["id"], delete_images=[first])

        assert result.data["property"]["images"] == [second]
        assert "images" in result.data["meta"]["updated_fields"]

    async def test_foreign_reference_ignored(
        self, owner_service: PropertyService, cabin_payload: dict[str, Any], image_root: Path
    ) -> None:
        created = await create(owner_service, cabin_payload, [make_upload()])
        other = await create(owner_service, {**cabin_payload, "name": "Other"}, [make_upload()])
        foreign = other["images"][0]

        result = await owner_service.update(created["id"], delete_images=[foreign])

        assert result.success is True
        assert result.data["property"]["images"] == created["images"]
        assert result.data["meta"]["changes_count"] == 0
        assert stored_path(image_root, foreign).exists()

    async def test_other_owner_cannot_update(
        self,
        owner_service: PropertyService,
        other_owner_service: PropertyService,
        cabin_payload: dict[str, Any],
    ) -> None:
        created = await create(owner_service, cabin_payload)

        result = await other_owner_service.update(created["id"], PropertyUpdate(name="Hijacked"))

        assert result.success is False
        assert result.error == "NOT_FOUND"
        fetched = await owner_service.get(created["id"])
        assert fetched.data["property"]["name"] == "Lakeview Cabin"

    async def test_failed_row_update_removes_new_files(
        self, owner_service: PropertyService, cabin_payload: dict[str, Any], image_root: Path
    ) -> None:
        created = await create(owner_service, cabin_payload)
        owner_service.repository.update_scoped = AsyncMock(
            side_effect=PersistenceError("Database error during update")
        )

        result = await owner_service.update(created["id"], images=[make_upload()])

        assert result.success is False
        assert result.error == "PERSISTENCE_ERROR"
        namespace = image_root / "property-images" / created["id"]
        assert not namespace.exists() or list(namespace.iterdir()) == []


class TestDelete:
    """Tests for PropertyService.delete."""

    async def test_soft_delete_keeps_images(
        self, owner_service: PropertyService, cabin_payload: dict[str, Any], image_root: Path
    ) -> None:
        created = await create(owner_service, cabin_payload, [make_upload()])

        result = await owner_service.delete(created["id"], preserve_history=True)

        assert result.success is True
        assert result.data["property"]["is_active"] is False
        assert result.data["property"]["deactivated_at"] is not None
        assert result.data["meta"] == {"preserve_history": True, "images_retained": 1}
        assert stored_path(image_root, created["images"][0]).exists()
        fetched = await owner_service.get(created["id"])
        assert fetched.success is True
        listed = await owner_service.list_properties()
        assert listed.data["properties"] == []

    async def test_hard_delete_purges_images(
        self, owner_service: PropertyService, cabin_payload: dict[str, Any], image_root: Path
    ) -> None:
        created = await create(owner_service, cabin_payload, [make_upload(), make_upload()])

        result = await owner_service.delete(created["id"])

        assert result.success is True
        assert result.data["id"] == created["id"]
        assert result.data["meta"]["images"] == {
            "deleted": 2,
            "not_found": 0,
            "failed": 0,
            "namespace": "deleted",
        }
        assert not (image_root / "property-images" / created["id"]).exists()
        fetched = await owner_service.get(created["id"])
        assert fetched.error == "NOT_FOUND"

    async def test_hard_delete_tolerates_missing_files(
        self, owner_service: PropertyService, cabin_payload: dict[str, Any], image_root: Path
    ) -> None:
        created = await create(owner_service, cabin_payload, [make_upload()])
        stored_path(image_root, created["images"][0]).unlink()

        result = await owner_service.delete(created["id"])

        assert result.success is True
        assert result.data["meta"]["images"]["not_found"] == 1

    async def test_other_owner_cannot_delete(
        self,
        owner_service: PropertyService,
        other_owner_service: PropertyService,
        cabin_payload: dict[str, Any],
    ) -> None:
        created = await create(owner_service, cabin_payload)

        result = await other_owner_service.delete(created["id"])

        assert result.success is False
        assert result.error == "NOT_FOUND"
        assert (await owner_service.get(created["id"])).success is True
