"""Integration tests for booking API endpoints."""

from __future__ import annotations

from datetime import timedelta
from unittest import mock
from uuid import uuid4

from django.conf import settings
from django.urls import reverse
from django.utils.dateparse import parse_datetime
from rest_framework import status
from rest_framework.test import APITestCase

from apps.bookings.models import Booking, Reservation
from apps.bookings.tests.factories import (
    CLIENT_ID,
    OTHER_CLIENT_ID,
    OWNER_ID,
    STRANGER_ID,
    at,
    bearer,
    future_day,
    make_resource,
)
from apps.resources.models import Resource


class BookingAPITestCase(APITestCase):
    def setUp(self) -> None:
        self.venue = make_resource(Resource.Kind.VENUE, capacity=50)
        self.supplier = make_resource(Resource.Kind.SUPPLIER, slot_duration=timedelta(hours=2))
        self.day = future_day()
        self.list_url = reverse("booking-list")
        self.as_client()

    def as_client(self, user_id: str = CLIENT_ID) -> None:
        self.client.credentials(HTTP_AUTHORIZATION=bearer(user_id, "client"))

    def as_owner(self, user_id: str = OWNER_ID) -> None:
        self.client.credentials(HTTP_AUTHORIZATION=bearer(user_id, "venue"))

    def request_venue(self, start, end=None, **extra):
        payload = {
            "resource_id": str(self.venue.id),
            "resource_kind": "venue",
            "start": start.isoformat(),
            **extra,
        }
        if end is not None:
            payload["end"] = end.isoformat()
        return self.client.post(self.list_url, payload, format="json")

    def create_booking(self, start_hour: int = 14, end_hour: int = 16, user_id: str = CLIENT_ID) -> str:
        self.as_client(user_id)
        response = self.request_venue(at(self.day, start_hour), at(self.day, end_hour))
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        return response.data["booking_id"]

    def change_status(self, booking_id: str, target: str, **extra):
        url = reverse("booking-change-status", args=[booking_id])
        return self.client.post(url, {"target_status": target, **extra}, format="json")

    def confirm(self, booking_id: str) -> None:
        self.as_owner()
        response = self.change_status(booking_id, "confirmed")
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)


class BookingCreateAPITests(BookingAPITestCase):
    """Covers requests, conflicts and validation."""

    def test_client_requests_venue_for_whole_days(self) -> None:
        response = self.request_venue(self.day, self.day + timedelta(days=1))

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["status"], "pending")
        booking = Booking.objects.get(pk=response.data["booking_id"])
        self.assertEqual(booking.client_id, CLIENT_ID)
        self.assertEqual(booking.resource_owner_id, OWNER_ID)
        self.assertEqual(booking.starts_at, at(self.day, 0))
        self.assertEqual(booking.ends_at, at(self.day + timedelta(days=2), 0))
        self.assertEqual(booking.version, 1)
        self.assertTrue(Reservation.objects.filter(booking=booking, resource=self.venue).exists())

    def test_overlapping_request_is_a_conflict(self) -> None:
        first = self.create_booking(14, 16)

        self.as_client(OTHER_CLIENT_ID)
        response = self.request_venue(at(self.day, 15), at(self.day, 17))

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data["error"], "schedule_conflict")
        self.assertEqual([c["booking_id"] for c in response.data["conflicts"]], [first])
        self.assertEqual(parse_datetime(response.data["suggested_range"]["start"]), at(self.day, 16))
        self.assertEqual(Booking.objects.count(), 1)

    def test_touching_request_is_accepted(self) -> None:
        self.create_booking(14, 16)

        self.as_client(OTHER_CLIENT_ID)
        response = self.request_venue(at(self.day, 16), at(self.day, 18))

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Reservation.objects.filter(resource=self.venue).count(), 2)

    def test_identical_requests_only_one_wins(self) -> None:
        self.create_booking(10, 12)

        self.as_client(OTHER_CLIENT_ID)
        response = self.request_venue(at(self.day, 10), at(self.day, 12))

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_supplier_end_defaults_to_slot_duration(self) -> None:
        start = at(self.day, 9)
        response = self.client.post(
            self.list_url,
            {"resource_id": str(self.supplier.id), "resource_kind": "supplier", "start": start.isoformat()},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(parse_datetime(response.data["booking"]["end"]), start + timedelta(hours=2))

    def test_details_are_stored(self) -> None:
        response = self.request_venue(
            self.day,
            details={"event_type": "wedding", "event_location": "Hall A", "guest_count": 40, "notes": "Vegan menu"},
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIsNone(response.data["capacity_warning"])
        self.assertEqual(response.data["booking"]["details"]["event_type"], "wedding")
        self.assertEqual(Booking.objects.get().guest_count, 40)

    def test_guest_count_above_capacity_warns(self) -> None:
        response = self.request_venue(self.day, details={"guest_count": 80})

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIn("capacity", response.data["capacity_warning"])

    def test_unknown_field_is_rejected(self) -> None:
        response = self.request_venue(self.day, price="100")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["error"], "validation_error")
        self.assertIn("price", response.data["fields"])

    def test_unknown_details_field_is_rejected(self) -> None:
        response = self.request_venue(self.day, details={"dress_code": "black tie"})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("details", response.data["fields"])

    def test_venue_for_today_is_rejected(self) -> None:
        today = future_day(0)
        response = self.request_venue(today)

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["field"], "start")

    def test_naive_datetime_is_rejected(self) -> None:
        response = self.client.post(
            self.list_url,
            {"resource_id": str(self.venue.id), "resource_kind": "venue", "start": f"{self.day}T14:00:00"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["error"], "validation_error")

    def test_end_before_start_is_rejected(self) -> None:
        response = self.request_venue(at(self.day, 16), at(self.day, 14))

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unknown_or_inactive_resource_is_not_found(self) -> None:
        self.venue.is_active = False
        self.venue.save()

        inactive = self.request_venue(self.day)
        unknown = self.client.post(
            self.list_url,
            {"resource_id": str(uuid4()), "resource_kind": "venue", "start": self.day.isoformat()},
            format="json",
        )

        self.assertEqual(inactive.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(unknown.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(unknown.data["error"], "not_found")

    def test_kind_must_match_resource(self) -> None:
        response = self.client.post(
            self.list_url,
            {"resource_id": str(self.supplier.id), "resource_kind": "venue", "start": self.day.isoformat()},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_owner_cannot_book_own_resource(self) -> None:
        self.as_owner()
        response = self.request_venue(self.day)

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_anonymous_request_is_rejected(self) -> None:
        self.client.credentials()
        response = self.request_venue(self.day)

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_token_without_role_is_forbidden(self) -> None:
        self.client.credentials(HTTP_AUTHORIZATION=bearer(CLIENT_ID, "superhero"))
        response = self.request_venue(self.day)

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_owner_role_claims(self) -> None:
        booking_id = self.create_booking()

        self.client.credentials(HTTP_AUTHORIZATION=bearer(OWNER_ID, "venue"))
        venue = self.client.get(self.list_url)
        self.client.credentials(HTTP_AUTHORIZATION=bearer(OWNER_ID, "supplier"))
        supplier = self.client.get(self.list_url)
        self.client.credentials(HTTP_AUTHORIZATION=bearer(OWNER_ID, "venue_owner"))
        unknown = self.client.get(self.list_url)

        self.assertEqual(venue.status_code, status.HTTP_200_OK)
        self.assertEqual([b["id"] for b in venue.data], [booking_id])
        self.assertEqual(supplier.status_code, status.HTTP_200_OK)
        self.assertEqual(unknown.status_code, status.HTTP_403_FORBIDDEN)


class BookingStatusAPITests(BookingAPITestCase):
    """Covers accept, reject, cancel and complete."""

    def test_owner_accepts(self) -> None:
        booking_id = self.create_booking()

        self.as_owner()
        response = self.change_status(booking_id, "confirmed")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["booking_id"], booking_id)
        self.assertEqual(response.data["status"], "confirmed")
        self.assertEqual(Booking.objects.get(pk=booking_id).version, 2)

    def test_client_cannot_accept(self) -> None:
        booking_id = self.create_booking()

        response = self.change_status(booking_id, "confirmed")

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data["error"], "forbidden")

    def test_stranger_is_forbidden(self) -> None:
        booking_id = self.create_booking()

        self.as_client(STRANGER_ID)
        response = self.change_status(booking_id, "cancelled")

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_unknown_booking_is_not_found(self) -> None:
        self.as_owner()
        response = self.change_status(str(uuid4()), "confirmed")

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_accepting_twice_is_invalid_transition(self) -> None:
        booking_id = self.create_booking()
        self.confirm(booking_id)

        response = self.change_status(booking_id, "confirmed")

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data["error"], "invalid_transition")
        self.assertEqual(response.data["current_status"], "confirmed")

    def test_accepting_without_reservation_is_invalid_transition(self) -> None:
        booking_id = self.create_booking(14, 16)
        Reservation.objects.filter(booking_id=booking_id).delete()

        self.as_owner()
        response = self.change_status(booking_id, "confirmed")

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data["error"], "invalid_transition")
        self.assertEqual(response.data["current_status"], "pending")
        booking = Booking.objects.get(pk=booking_id)
        self.assertEqual(booking.status, "pending")
        self.assertEqual(booking.version, 1)
        self.assertFalse(Reservation.objects.filter(booking_id=booking_id).exists())

    def test_pending_is_not_a_target(self) -> None:
        booking_id = self.create_booking()

        response = self.change_status(booking_id, "pending")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_reject_frees_the_slot(self) -> None:
        booking_id = self.create_booking(14, 16)

        self.as_owner()
        response = self.change_status(booking_id, "rejected", reason="Closed for renovation")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["booking"]["remarks"], "Closed for renovation")
        self.assertFalse(Reservation.objects.filter(booking_id=booking_id).exists())
        self.create_booking(14, 16, user_id=OTHER_CLIENT_ID)

    def test_client_cancels_confirmed_booking(self) -> None:
        booking_id = self.create_booking(14, 16)
        self.confirm(booking_id)

        self.as_client()
        response = self.change_status(booking_id, "cancelled")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["status"], "cancelled")
        self.assertFalse(Reservation.objects.filter(booking_id=booking_id).exists())

    def test_cancelled_booking_is_terminal(self) -> None:
        booking_id = self.create_booking()
        self.change_status(booking_id, "cancelled")

        self.as_owner()
        response = self.change_status(booking_id, "confirmed")

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_complete_before_event_starts_is_rejected(self) -> None:
        booking_id = self.create_booking()
        self.confirm(booking_id)

        response = self.change_status(booking_id, "completed")

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_complete_after_event_started(self) -> None:
        booking_id = self.create_booking(14, 16)
        self.confirm(booking_id)

        with mock.patch("django.utils.timezone.now", return_value=at(self.day, 15)):
            response = self.change_status(booking_id, "completed")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["status"], "completed")
        self.assertTrue(Reservation.objects.filter(booking_id=booking_id).exists())

    def test_complete_guard_can_be_disabled(self) -> None:
        booking_id = self.create_booking()
        self.confirm(booking_id)

        engine = {**settings.BOOKING_ENGINE, "COMPLETE_REQUIRES_EVENT_STARTED": False}
        with self.settings(BOOKING_ENGINE=engine):
            response = self.change_status(booking_id, "completed")

        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_unknown_status_field_is_rejected(self) -> None:
        booking_id = self.create_booking()

        response = self.change_status(booking_id, "cancelled", by="me")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class BookingQueryAPITests(BookingAPITestCase):
    def test_client_lists_own_bookings(self) -> None:
        mine = self.create_booking(10, 11)
        self.create_booking(12, 13, user_id=OTHER_CLIENT_ID)

        self.as_client()
        response = self.client.get(self.list_url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([b["id"] for b in response.data], [mine])

    def test_owner_lists_bookings_of_their_resources(self) -> None:
        first = self.create_booking(10, 11)
        second = self.create_booking(12, 13, user_id=OTHER_CLIENT_ID)
        self.confirm(first)

        response = self.client.get(self.list_url)
        confirmed = self.client.get(self.list_url, {"status": "confirmed"})

        self.assertEqual([b["id"] for b in response.data], [first, second])
        self.assertEqual([b["id"] for b in confirmed.data], [first])

    def test_explicit_perspective(self) -> None:
        self.create_booking(10, 11)

        response = self.client.get(self.list_url, {"as": "owner"})
        invalid = self.client.get(self.list_url, {"as": "admin"})

        self.assertEqual(response.data, [])
        self.assertEqual(invalid.status_code, status.HTTP_400_BAD_REQUEST)

    def test_retrieve_is_stakeholder_only(self) -> None:
        booking_id = self.create_booking()
        url = reverse("booking-detail", args=[booking_id])

        own = self.client.get(url)
        self.as_owner()
        owner = self.client.get(url)
        self.as_client(STRANGER_ID)
        stranger = self.client.get(url)

        self.assertEqual(own.status_code, status.HTTP_200_OK)
        self.assertEqual(own.data["reschedules"], [])
        self.assertEqual(owner.status_code, status.HTTP_200_OK)
        self.assertEqual(stranger.status_code, status.HTTP_403_FORBIDDEN)


class HealthCheckTests(APITestCase):
    def test_healthz(self) -> None:
        response = self.client.get(reverse("healthz"))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "healthy")
