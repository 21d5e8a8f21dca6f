"""Donation endpoints.

Prime (one-time) and periodic donations share the same lifecycle and checks
and differ only in the rule set and table the service is asked to use.
"""

from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Query, Request, Response, status
from fastapi.responses import JSONResponse

from newsroom_api.api.dependencies import CurrentIdentity, DonationSvc, Mailer, read_json_body
from newsroom_api.api.models import DonationRecordJSON, success
from newsroom_api.domain.donation import DonationKind

router = APIRouter(tags=["donations"])

UserIdQuery = Annotated[str | None, Query(description="Claimed owner of the donation")]


async def _create(
    kind: DonationKind,
    request: Request,
    identity: CurrentIdentity,
    service: DonationSvc,
    mailer: Mailer,
    background_tasks: BackgroundTasks,
) -> JSONResponse:
    body = await read_json_body(request)
    donation = await service.create(identity, kind, body)
    # A redirect payment is not finished until the donor completes it
    if donation.payment_url is None:
        background_tasks.add_task(mailer.notify_donation_success, donation)
    return success(DonationRecordJSON.from_domain(donation), status_code=status.HTTP_201_CREATED)


@router.post("/v1/donations/prime", status_code=status.HTTP_201_CREATED)
async def create_prime_donation(
    request: Request,
    identity: CurrentIdentity,
    service: DonationSvc,
    mailer: Mailer,
    background_tasks: BackgroundTasks,
) -> JSONResponse:
    """Charge a prime once and store the donation."""
    return await _create(DonationKind.PRIME, request, identity, service, mailer, background_tasks)


@router.patch("/v1/donations/prime/{donation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def patch_prime_donation(
    donation_id: int,
    request: Request,
    identity: CurrentIdentity,
    service: DonationSvc,
) -> Response:
    """Update donor details, notes or receipt preferences of a prime donation."""
    body = await read_json_body(request)
    service.patch(identity, DonationKind.PRIME, donation_id, body)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/v1/donations/prime/{donation_id}")
async def get_prime_donation(
    donation_id: int,
    identity: CurrentIdentity,
    service: DonationSvc,
    user_id: UserIdQuery = None,
) -> JSONResponse:
    """Return a prime donation owned by the caller."""
    donation = service.fetch(identity, DonationKind.PRIME, donation_id, user_id)
    return success(DonationRecordJSON.from_domain(donation))


@router.post("/v1/periodic-donations", status_code=status.HTTP_201_CREATED)
async def create_periodic_donation(
    request: Request,
    identity: CurrentIdentity,
    service: DonationSvc,
    mailer: Mailer,
    background_tasks: BackgroundTasks,
) -> JSONResponse:
    """Charge the first period, remember the card and store the subscription."""
    return await _create(
        DonationKind.PERIODIC, request, identity, service, mailer, background_tasks
    )


@router.patch("/v1/periodic-donations/{donation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def patch_periodic_donation(
    donation_id: int,
    request: Request,
    identity: CurrentIdentity,
    service: DonationSvc,
) -> Response:
    """Update donor details, notes or receipt preferences of a periodic donation."""
    body = await read_json_body(request)
    service.patch(identity, DonationKind.PERIODIC, donation_id, body)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/v1/periodic-donations/{donation_id}")
async def get_periodic_donation(
    donation_id: int,
    identity: CurrentIdentity,
    service: DonationSvc,
    user_id: UserIdQuery = None,
) -> JSONResponse:
    """Return a periodic donation owned by the caller."""
    donation = service.fetch(identity, DonationKind.PERIODIC, donation_id, user_id)
    return success(DonationRecordJSON.from_domain(donation))
