"""``/v1/users``: registration, login, profile updates and password resets."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response

from marmalade_api.apis.deps import get_user_store, optional_field, required_field
from marmalade_api.http.errors import bad_request, not_found
from marmalade_api.http.responses import render
from marmalade_api.services.users_service import UserStore

router = APIRouter(prefix="/v1/users", tags=["Users"])


@router.post("/login", summary="Exchange a password for an upload token")
async def login(
    request: Request,
    users: UserStore = Depends(get_user_store),
) -> Response:
    form = await request.form()
    user = await users.load_user(required_field(form, "name"), required_field(form, "password"))
    if user is None:
        raise bad_request("Username or password invalid")
    return render(
        request,
        {"message": f'Logged in as "{user.name}"', "name": user.name, "token": user.token},
    )


@router.post("/reset", summary="Mail a temporary password to the user")
async def reset_password(
    request: Request,
    users: UserStore = Depends(get_user_store),
) -> Response:
    form = await request.form()
    await users.reset_password(required_field(form, "name"))
    return render(request, {"message": "Email sent with temporary password."})


@router.get("/{name}", summary="Public profile of a user")
async def get_user(
    request: Request,
    name: str,
    users: UserStore = Depends(get_user_store),
) -> Response:
    user = await users.load_public_user(name)
    if user is None:
        raise not_found(f'User "{name}" doesn\'t exist')
    return render(request, {"message": f"Got {user['name']}", "user": user})


@router.post("", summary="Register a user")
async def register_user(
    request: Request,
    users: UserStore = Depends(get_user_store),
) -> Response:
    form = await request.form()
    user = await users.register_user(
        required_field(form, "name"),
        required_field(form, "email"),
        required_field(form, "password"),
    )
    return render(
        request,
        {
            "message": f"Successfully registered {user.name}",
            "name": user.name,
            "token": user.token,
        },
    )


@router.put("", summary="Update a user's email or password")
async def update_user(
    request: Request,
    users: UserStore = Depends(get_user_store),
) -> Response:
    form = await request.form()
    name = required_field(form, "name")
    await users.update_user(
        name,
        required_field(form, "token"),
        email=optional_field(form, "email"),
        password=optional_field(form, "password"),
    )
    return render(request, {"message": f"Successfully updated {name}"})
