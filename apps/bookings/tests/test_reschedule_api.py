"""Integration tests for the reschedule workflow."""

from __future__ import annotations

from datetime import timedelta
from uuid import uuid4

from django.urls import reverse
from django.utils.dateparse import parse_datetime
from rest_framework import status

from apps.bookings.models import Booking, Reservation, RescheduleRequest
from apps.bookings.tests.factories import CLIENT_ID, OTHER_CLIENT_ID, STRANGER_ID, at
from apps.bookings.tests.test_booking_api import BookingAPITestCase


class RescheduleAPITestCase(BookingAPITestCase):
    def setUp(self) -> None:
        super().setUp()
        self.next_day = self.day + timedelta(days=1)
        self.booking_id = self.create_booking(14, 16)
        self.confirm(self.booking_id)
        self.as_client()

    def propose(self, start, end=None, booking_id: str | None = None):
        payload = {"start": start.isoformat()}
        if end is not None:
            payload["end"] = end.isoformat()
        url = reverse("booking-reschedule", args=[booking_id or self.booking_id])
        return self.client.post(url, payload, format="json")

    def resolve(self, reschedule_id: str, decision: str):
        url = reverse("reschedule-resolve", args=[reschedule_id])
        return self.client.post(url, {"decision": decision}, format="json")

    def withdraw(self, reschedule_id: str):
        return self.client.post(reverse("reschedule-withdraw", args=[reschedule_id]), {}, format="json")

    def reserved_range(self, booking_id: str | None = None):
        reservation = Reservation.objects.get(booking_id=booking_id or self.booking_id)
        return reservation.starts_at, reservation.ends_at

    def proposal(self) -> str:
        response = self.propose(at(self.next_day, 14), at(self.next_day, 16))
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        return response.data["reschedule_id"]


class ProposeRescheduleTests(RescheduleAPITestCase):
    def test_proposal_keeps_original_range_reserved(self) -> None:
        response = self.propose(at(self.next_day, 14), at(self.next_day, 16))

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["status"], "pending")
        booking = Booking.objects.get(pk=self.booking_id)
        self.assertEqual(booking.status, Booking.Status.PENDING)
        self.assertEqual(booking.starts_at, at(self.day, 14))
        self.assertEqual(self.reserved_range(), (at(self.day, 14), at(self.day, 16)))
        reschedule = response.data["reschedule"]
        self.assertEqual(parse_datetime(reschedule["original_start"]), at(self.day, 14))
        self.assertEqual(parse_datetime(reschedule["requested_start"]), at(self.next_day, 14))

    def test_missing_end_keeps_current_duration(self) -> None:
        response = self.propose(at(self.next_day, 9))

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(parse_datetime(response.data["reschedule"]["requested_end"]), at(self.next_day, 11))

    def test_owner_may_propose(self) -> None:
        self.as_owner()
        response = self.propose(at(self.next_day, 14), at(self.next_day, 16))

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_stranger_cannot_propose(self) -> None:
        self.as_client(STRANGER_ID)
        response = self.propose(at(self.next_day, 14), at(self.next_day, 16))

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_pending_booking_cannot_be_rescheduled(self) -> None:
        pending_id = self.create_booking(18, 20, user_id=OTHER_CLIENT_ID)

        response = self.propose(at(self.next_day, 18), at(self.next_day, 20), booking_id=pending_id)

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data["error"], "invalid_transition")

    def test_second_proposal_is_rejected(self) -> None:
        self.proposal()

        self.as_owner()
        response = self.propose(at(self.next_day, 18), at(self.next_day, 20))

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(RescheduleRequest.objects.count(), 1)

    def test_conflicting_proposal_is_rejected(self) -> None:
        other = self.create_booking(16, 18, user_id=OTHER_CLIENT_ID)
        self.as_client()

        response = self.propose(at(self.day, 15), at(self.day, 17))

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data["error"], "schedule_conflict")
        self.assertEqual([c["booking_id"] for c in response.data["conflicts"]], [other])
        self.assertEqual(Booking.objects.get(pk=self.booking_id).status, Booking.Status.CONFIRMED)
        self.assertFalse(RescheduleRequest.objects.exists())

    def test_proposal_may_overlap_own_range(self) -> None:
        response = self.propose(at(self.day, 15), at(self.day, 17))

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_unknown_field_is_rejected(self) -> None:
        url = reverse("booking-reschedule", args=[self.booking_id])
        response = self.client.post(url, {"start": at(self.next_day, 9).isoformat(), "why": "x"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class ResolveRescheduleTests(RescheduleAPITestCase):
    def test_approve_moves_the_reservation(self) -> None:
        reschedule_id = self.proposal()

        self.as_owner()
        response = self.resolve(reschedule_id, "approve")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["booking"]["status"], "confirmed")
        self.assertEqual(response.data["reschedule"]["status"], "approved")
        self.assertEqual(self.reserved_range(), (at(self.next_day, 14), at(self.next_day, 16)))
        # the original range is free again
        self.create_booking(14, 16, user_id=OTHER_CLIENT_ID)

    def test_reject_restores_confirmed_booking(self) -> None:
        reschedule_id = self.proposal()

        self.as_owner()
        response = self.resolve(reschedule_id, "reject")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        booking = Booking.objects.get(pk=self.booking_id)
        self.assertEqual(booking.status, Booking.Status.CONFIRMED)
        self.assertEqual((booking.starts_at, booking.ends_at), (at(self.day, 14), at(self.day, 16)))
        self.assertEqual(self.reserved_range(), (at(self.day, 14), at(self.day, 16)))

    def test_proposer_cannot_approve(self) -> None:
        reschedule_id = self.proposal()

        response = self.resolve(reschedule_id, "approve")

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_resolved_request_is_final(self) -> None:
        reschedule_id = self.proposal()
        self.as_owner()
        self.resolve(reschedule_id, "reject")

        response = self.resolve(reschedule_id, "approve")

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_unknown_reschedule(self) -> None:
        self.as_owner()
        response = self.resolve(str(uuid4()), "approve")

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_late_conflict_keeps_request_pending(self) -> None:
        reschedule_id = self.proposal()
        # someone else takes the requested range while the request waits
        self.as_client(OTHER_CLIENT_ID)
        response = self.request_venue(at(self.next_day, 14), at(self.next_day, 16))
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        late = response.data["booking_id"]

        self.as_owner()
        approve = self.resolve(reschedule_id, "approve")

        self.assertEqual(approve.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(approve.data["error"], "schedule_conflict")
        self.assertEqual(RescheduleRequest.objects.get(pk=reschedule_id).status, "pending")
        self.assertEqual(Booking.objects.get(pk=self.booking_id).status, Booking.Status.PENDING)
        self.assertEqual(self.reserved_range(), (at(self.day, 14), at(self.day, 16)))

        reject = self.resolve(reschedule_id, "reject")

        self.assertEqual(reject.status_code, status.HTTP_200_OK)
        self.assertEqual(reject.data["booking"]["status"], "confirmed")
        self.assertEqual(self.reserved_range(late), (at(self.next_day, 14), at(self.next_day, 16)))

    def test_status_endpoint_resolves_pending_reschedule(self) -> None:
        self.proposal()

        self.as_owner()
        response = self.change_status(self.booking_id, "confirmed")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["status"], "confirmed")
        self.assertEqual(self.reserved_range(), (at(self.next_day, 14), at(self.next_day, 16)))

    def test_status_endpoint_rejects_pending_reschedule(self) -> None:
        self.proposal()

        self.as_owner()
        response = self.change_status(self.booking_id, "rejected")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["status"], "confirmed")
        self.assertEqual(RescheduleRequest.objects.get().status, "rejected")


class WithdrawRescheduleTests(RescheduleAPITestCase):
    def test_proposer_withdraws(self) -> None:
        reschedule_id = self.proposal()

        response = self.withdraw(reschedule_id)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["reschedule"]["status"], "withdrawn")
        self.assertEqual(response.data["booking"]["status"], "confirmed")

    def test_counterparty_cannot_withdraw(self) -> None:
        reschedule_id = self.proposal()

        self.as_owner()
        response = self.withdraw(reschedule_id)

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_cancel_withdraws_pending_request(self) -> None:
        reschedule_id = self.proposal()

        response = self.change_status(self.booking_id, "cancelled")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(RescheduleRequest.objects.get(pk=reschedule_id).status, "withdrawn")
        self.assertFalse(Reservation.objects.filter(booking_id=self.booking_id).exists())

    def test_retrieve_shows_history(self) -> None:
        reschedule_id = self.proposal()
        self.withdraw(reschedule_id)

        response = self.client.get(reverse("booking-detail", args=[self.booking_id]))

        self.assertIsNone(response.data["active_reschedule_id"])
        self.assertEqual([r["id"] for r in response.data["reschedules"]], [reschedule_id])
        self.assertEqual(response.data["client_id"], CLIENT_ID)
