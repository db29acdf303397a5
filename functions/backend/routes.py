"""
HTTP routes for the BeanBook backend.

Each request builds fresh managers for the caller; shared state lives in the
document store.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, replace

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile

from backend.auth import AuthClient, AuthUser
from backend.auth_manager import AuthManager
from backend.bag_manager import BagForm, CoffeeBagManager
from backend.brew_manager import BrewForm, CoffeeBrewManager
from backend.dependencies import (
    get_auth_client,
    get_auth_manager,
    get_bag_manager,
    get_brew_manager,
    get_current_user,
    get_notification_manager,
    get_user_manager,
)
from backend.images import ImageEncodingError
from backend.notification_manager import NotificationManager
from backend.schemas import (
    BagListResponse,
    BagPayload,
    BrewCalendarResponse,
    BrewListResponse,
    BrewPayload,
    BrewResponse,
    BrewUpdatePayload,
    CalendarDay,
    CreatedResponse,
    CredentialsRequest,
    FavoriteResponse,
    ProfileResponse,
    ProfileUpdateRequest,
    PushTokenRequest,
    ReminderRequest,
    ReminderResponse,
    SessionResponse,
    StatusResponse,
    StockPicturesResponse,
)
from backend.user_manager import UserManager
from shared.brew_calendar import (
    aspect_ratio,
    daily_brew_counts,
    weekday_index,
    weeks_spanned,
)
from shared.constants import ANONYMOUS_USER_NAME
from shared.json_utils import convert_keys
from shared.types import CoffeeBag, CoffeeBrew, UserProfile

logger = logging.getLogger(__name__)

router = APIRouter()


def _to_json(record) -> dict:
    return convert_keys(asdict(record), "snake_to_camel")


def _brew_form(payload: BrewPayload) -> BrewForm:
    return BrewForm(
        title=payload.title,
        method=payload.method,
        coffee_grams=payload.coffee_grams,
        water_grams=payload.water_grams,
        brew_time_seconds=payload.brew_time_seconds,
        grind_size=payload.grind_size,
        notes=payload.notes,
    )


def _bag_form(payload: BagPayload) -> BagForm:
    return BagForm(
        brand_name=payload.brand_name,
        roast_level=payload.roast_level,
        origin=payload.origin,
        location=payload.location,
    )


def _owned_brew(brew_id: str, user: AuthUser, brews: CoffeeBrewManager) -> CoffeeBrew:
    brew = brews.get_brew(brew_id)
    if brew is None:
        raise HTTPException(status_code=404, detail="Brew not found")
    if brew.creator_id != user.uid:
        raise HTTPException(status_code=403, detail="Only the creator can change a brew")
    return brew


def _owned_bag(bag_id: str, user: AuthUser, bags: CoffeeBagManager) -> CoffeeBag:
    bag = bags.get_bag(bag_id)
    if bag is None:
        raise HTTPException(status_code=404, detail="Bag not found")
    if bag.user_id != user.uid:
        raise HTTPException(status_code=403, detail="Only the owner can change a bag")
    return bag


def _session(auth_manager: AuthManager) -> SessionResponse:
    user = auth_manager.user
    return SessionResponse(
        uid=user.uid,
        email=user.email,
        id_token=user.id_token,
        refresh_token=user.refresh_token,
    )


# Auth


@router.post("/auth/sign-up", response_model=SessionResponse, status_code=201)
def sign_up(
    payload: CredentialsRequest, auth_client: AuthClient = Depends(get_auth_client)
):
    auth_manager = AuthManager(auth_client)
    if not auth_manager.sign_up(payload.email, payload.password):
        raise HTTPException(status_code=400, detail=auth_manager.error_message)
    return _session(auth_manager)


@router.post("/auth/sign-in", response_model=SessionResponse)
def sign_in(
    payload: CredentialsRequest, auth_client: AuthClient = Depends(get_auth_client)
):
    auth_manager = AuthManager(auth_client)
    if not auth_manager.sign_in(payload.email, payload.password):
        raise HTTPException(status_code=400, detail=auth_manager.error_message)
    return _session(auth_manager)


@router.post("/auth/sign-out", response_model=StatusResponse)
def sign_out(auth_manager: AuthManager = Depends(get_auth_manager)):
    auth_manager.sign_out()
    return StatusResponse(status="ok")


# Brews


@router.get("/brews", response_model=BrewListResponse)
def list_brews(
    user: AuthUser = Depends(get_current_user),
    brews: CoffeeBrewManager = Depends(get_brew_manager),
):
    brews.fetch_brews()
    return BrewListResponse(brews=[_to_json(b) for b in brews.coffee_brews])


@router.get("/brews/mine", response_model=BrewListResponse)
def list_my_brews(
    user: AuthUser = Depends(get_current_user),
    brews: CoffeeBrewManager = Depends(get_brew_manager),
):
    brews.fetch_user_brews(user.uid)
    return BrewListResponse(brews=[_to_json(b) for b in brews.user_brews])


@router.get("/brews/favorites", response_model=BrewListResponse)
def list_favorite_brews(
    users: UserManager = Depends(get_user_manager),
    brews: CoffeeBrewManager = Depends(get_brew_manager),
):
    users.fetch_user_profile()
    profile = users.current_user_profile
    favorites = profile.favorites if profile else []
    return BrewListResponse(
        brews=[_to_json(b) for b in brews.fetch_favorite_brews(favorites)]
    )


@router.get("/brews/calendar", response_model=BrewCalendarResponse)
def brew_calendar(
    user: AuthUser = Depends(get_current_user),
    brews: CoffeeBrewManager = Depends(get_brew_manager),
):
    brews.fetch_user_brews(user.uid)
    counts = daily_brew_counts(brews.user_brews)
    days = [
        CalendarDay(date=day.isoformat(), weekday=weekday_index(day), count=count)
        for day, count in sorted(counts.items())
    ]
    return BrewCalendarResponse(
        days=days,
        weeks=weeks_spanned(brews.user_brews),
        aspect_ratio=aspect_ratio(brews.user_brews),
    )


@router.get("/brews/{brew_id}", response_model=BrewResponse)
def get_brew(
    brew_id: str,
    user: AuthUser = Depends(get_current_user),
    brews: CoffeeBrewManager = Depends(get_brew_manager),
):
    brew = brews.get_brew(brew_id)
    if brew is None:
        raise HTTPException(status_code=404, detail="Brew not found")
    brew = replace(brew, creator_name=brews.get_creator_name(brew.creator_id))
    return BrewResponse(brew=_to_json(brew))


@router.post("/brews", response_model=CreatedResponse, status_code=201)
def create_brew(
    payload: BrewPayload,
    user: AuthUser = Depends(get_current_user),
    users: UserManager = Depends(get_user_manager),
    brews: CoffeeBrewManager = Depends(get_brew_manager),
    bags: CoffeeBagManager = Depends(get_bag_manager),
):
    users.fetch_user_profile()
    profile = users.current_user_profile
    display_name = (profile.display_name if profile else None) or user.display_name
    creator = replace(user, display_name=display_name)

    bag = None
    if payload.bag is not None:
        bag = _bag_form(payload.bag).to_bag(
            user_id=user.uid, user_name=display_name or ANONYMOUS_USER_NAME
        )
    brew_id = brews.create_brew(creator, _brew_form(payload), bag=bag, bag_manager=bags)
    if brew_id is None:
        raise HTTPException(status_code=503, detail="Could not save brew")
    return CreatedResponse(id=brew_id)


@router.put("/brews/{brew_id}", response_model=StatusResponse)
def update_brew(
    brew_id: str,
    payload: BrewUpdatePayload,
    user: AuthUser = Depends(get_current_user),
    brews: CoffeeBrewManager = Depends(get_brew_manager),
):
    brew = _owned_brew(brew_id, user, brews)
    form = replace(BrewForm.from_brew(brew), **payload.model_dump(exclude_none=True))
    brews.update_brew(form.apply_to(brew))
    return StatusResponse(status="ok")


@router.delete("/brews/{brew_id}", response_model=StatusResponse)
def delete_brew(
    brew_id: str,
    user: AuthUser = Depends(get_current_user),
    brews: CoffeeBrewManager = Depends(get_brew_manager),
):
    brews.delete_brew(_owned_brew(brew_id, user, brews))
    return StatusResponse(status="ok")


@router.post("/brews/{brew_id}/favorite", response_model=FavoriteResponse)
def toggle_favorite(
    brew_id: str,
    users: UserManager = Depends(get_user_manager),
    brews: CoffeeBrewManager = Depends(get_brew_manager),
):
    brew = brews.get_brew(brew_id)
    if brew is None:
        raise HTTPException(status_code=404, detail="Brew not found")
    users.fetch_user_profile()
    favorited = users.favorite_brew(brew, brews)
    if favorited is None:
        raise HTTPException(status_code=409, detail="Set up a profile before saving brews")
    return FavoriteResponse(brew_id=brew_id, favorited=favorited)


@router.post("/brews/{brew_id}/image", response_model=BrewResponse)
async def upload_brew_image(
    brew_id: str,
    file: UploadFile = File(...),
    user: AuthUser = Depends(get_current_user),
    brews: CoffeeBrewManager = Depends(get_brew_manager),
):
    brew = _owned_brew(brew_id, user, brews)
    image_bytes = await file.read()
    try:
        image_url = brews.upload_brew_image(image_bytes, user.uid)
    except ImageEncodingError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error uploading image for brew {brew_id}: {e}")
        raise HTTPException(status_code=503, detail="Could not upload image")
    brew = replace(brew, image_url=image_url)
    brews.update_brew(brew)
    return BrewResponse(brew=_to_json(brew))


# Bags


@router.get("/bags", response_model=BagListResponse)
def list_bags(
    mine: bool = Query(False),
    user: AuthUser = Depends(get_current_user),
    bags: CoffeeBagManager = Depends(get_bag_manager),
):
    bags.fetch_coffee_bags(user_id=user.uid if mine else None)
    return BagListResponse(bags=[_to_json(b) for b in bags.bags])


@router.post("/bags", response_model=CreatedResponse, status_code=201)
def create_bag(
    payload: BagPayload,
    users: UserManager = Depends(get_user_manager),
    bags: CoffeeBagManager = Depends(get_bag_manager),
):
    users.fetch_user_profile()
    profile = users.current_user_profile
    user_name = (profile.display_name if profile else None) or ANONYMOUS_USER_NAME
    bag_id = bags.add_bag(_bag_form(payload).to_bag(users.current_uid, user_name))
    if bag_id is None:
        raise HTTPException(status_code=503, detail="Could not save bag")
    return CreatedResponse(id=bag_id)


@router.put("/bags/{bag_id}", response_model=StatusResponse)
def update_bag(
    bag_id: str,
    payload: BagPayload,
    user: AuthUser = Depends(get_current_user),
    bags: CoffeeBagManager = Depends(get_bag_manager),
):
    bag = _owned_bag(bag_id, user, bags)
    updated = _bag_form(payload).to_bag(bag.user_id, bag.user_name)
    bags.update_bag(replace(updated, id=bag.id, created_at=bag.created_at))
    return StatusResponse(status="ok")


@router.delete("/bags/{bag_id}", response_model=StatusResponse)
def delete_bag(
    bag_id: str,
    user: AuthUser = Depends(get_current_user),
    bags: CoffeeBagManager = Depends(get_bag_manager),
):
    bags.delete_bag(_owned_bag(bag_id, user, bags))
    return StatusResponse(status="ok")


# Profile


def _profile_response(users: UserManager) -> ProfileResponse:
    profile = users.current_user_profile
    return ProfileResponse(
        profile=_to_json(profile) if profile else None,
        needs_onboarding=profile is None,
    )


@router.get("/profile", response_model=ProfileResponse)
def get_profile(users: UserManager = Depends(get_user_manager)):
    users.fetch_user_profile()
    return _profile_response(users)


@router.put("/profile", response_model=ProfileResponse)
def update_profile(
    payload: ProfileUpdateRequest,
    user: AuthUser = Depends(get_current_user),
    users: UserManager = Depends(get_user_manager),
):
    users.fetch_user_profile()
    profile = users.current_user_profile or UserProfile(email=user.email or "")
    changes = payload.model_dump(exclude_none=True)
    users.create_or_update_user(replace(profile, **changes))
    return _profile_response(users)


@router.post("/profile/push-token", response_model=StatusResponse)
def update_push_token(
    payload: PushTokenRequest, users: UserManager = Depends(get_user_manager)
):
    users.update_push_token(payload.token)
    return StatusResponse(status="ok")


@router.delete("/profile", response_model=StatusResponse)
def delete_profile(
    users: UserManager = Depends(get_user_manager),
    auth_manager: AuthManager = Depends(get_auth_manager),
):
    users.delete_user()
    auth_manager.sign_out()
    return StatusResponse(status="ok")


@router.get("/profile/stock-pictures", response_model=StockPicturesResponse)
def stock_pictures(users: UserManager = Depends(get_user_manager)):
    return StockPicturesResponse(urls=users.fetch_stock_profile_picture_urls())


# Reminders


@router.get("/reminders", response_model=ReminderResponse)
def get_reminder(users: UserManager = Depends(get_user_manager)):
    users.fetch_user_profile()
    profile = users.current_user_profile
    reminder = profile.reminder if profile else None
    if reminder is None:
        return ReminderResponse(scheduled=False)
    return ReminderResponse(scheduled=True, hour=reminder.hour, minute=reminder.minute)


@router.put("/reminders", response_model=ReminderResponse)
def schedule_reminder(
    payload: ReminderRequest,
    notifications: NotificationManager = Depends(get_notification_manager),
):
    reminder = notifications.schedule_daily_coffee_reminder(payload.hour, payload.minute)
    if reminder is None:
        raise HTTPException(status_code=503, detail="Could not schedule reminder")
    return ReminderResponse(scheduled=True, hour=reminder.hour, minute=reminder.minute)


@router.delete("/reminders", response_model=ReminderResponse)
def cancel_reminder(
    notifications: NotificationManager = Depends(get_notification_manager),
):
    notifications.cancel_daily_coffee_reminder()
    return ReminderResponse(scheduled=False)
