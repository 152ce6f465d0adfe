"""Roster rules for a single match.

Every function here mutates the ``Match`` it is given and either completes
the whole change or raises before touching the lists. Callers run them inside
a Firestore transaction on a freshly read match, so a raised error leaves the
stored document untouched.

Policies:

* Only registered users occupy the ``capacity`` participant seats. Guests
  always go to the reserves and are never promoted automatically.
* A full roster silently redirects a participant signup to the reserves; the
  result reports ``redirected=True``.
* A participant leaving promotes the first non-guest reserve (FIFO).
"""

from __future__ import annotations

from typing import Optional, Sequence

from volleyroster.core.constants import MAX_GUESTS_PER_USER, MAX_PARTICIPANTS
from volleyroster.errors import (
    AlreadyRegisteredError,
    CapacityExceededError,
    GuestLimitExceededError,
    NotRegisteredError,
    UnauthorizedError,
    ValidationError,
)

from .models import (
    GuestEntry,
    Match,
    RemovalResult,
    RosterEntry,
    SignupResult,
    UserEntry,
)

PLACEMENT_PARTICIPANTS = "participants"
PLACEMENT_RESERVES = "reserves"
PLACEMENT_GUESTS_ONLY = "guests_only"


def registered_count(match: Match) -> int:
    """Count the registered users holding a participant seat."""
    return sum(1 for entry in match.participants if not entry.is_guest)


def is_full(match: Match, capacity: int = MAX_PARTICIPANTS) -> bool:
    return registered_count(match) >= capacity


def find_user(match: Match, uid: str) -> Optional[str]:
    """Return the list name holding ``uid`` as a registered user, if any."""
    for list_name in (PLACEMENT_PARTICIPANTS, PLACEMENT_RESERVES):
        for entry in getattr(match, list_name):
            if isinstance(entry, UserEntry) and entry.uid == uid:
                return list_name
    return None


def guests_of(match: Match, sponsor_uid: str) -> list[GuestEntry]:
    entries = [*match.participants, *match.reserves]
    return [
        e for e in entries if isinstance(e, GuestEntry) and e.sponsor_uid == sponsor_uid
    ]


def _index_of(entries: list[RosterEntry], entry_id: str) -> int:
    for index, entry in enumerate(entries):
        if entry.entry_id == entry_id:
            return index
    return -1


def _promote_first_reserve(match: Match, capacity: int) -> Optional[UserEntry]:
    if is_full(match, capacity):
        return None
    for index, entry in enumerate(match.reserves):
        if isinstance(entry, UserEntry):
            del match.reserves[index]
            match.participants.append(entry)
            return entry
    return None


def _check_guest_limit(
    match: Match, sponsor_uid: str, new_guests: int, max_guests: Optional[int]
) -> None:
    if max_guests is None:
        return
    if len(guests_of(match, sponsor_uid)) + new_guests > max_guests:
        raise GuestLimitExceededError(
            f"You can bring at most {max_guests} guests to a match."
        )


def signup(
    match: Match,
    entry: UserEntry,
    as_reserve: bool = False,
    guests: Sequence[GuestEntry] = (),
    max_guests: Optional[int] = MAX_GUESTS_PER_USER,
    capacity: int = MAX_PARTICIPANTS,
) -> SignupResult:
    """Sign ``entry`` up for the match, optionally bringing guests.

    A user who is already on the roster may still add guests; the user entry
    itself is left where it is.
    """
    for guest in guests:
        if guest.sponsor_uid != entry.uid:
            raise ValidationError("Guests must be sponsored by the signing user.")
        if not guest.display_name.strip():
            raise ValidationError("Guest names cannot be empty.")

    already_on = find_user(match, entry.uid) is not None
    if already_on and not guests:
        raise AlreadyRegisteredError()

    _check_guest_limit(match, entry.uid, len(guests), max_guests)

    if already_on:
        match.reserves.extend(guests)
        return SignupResult(placement=PLACEMENT_GUESTS_ONLY, guests=list(guests))

    if as_reserve:
        match.reserves.append(entry)
        placement, redirected = PLACEMENT_RESERVES, False
    elif is_full(match, capacity):
        match.reserves.append(entry)
        placement, redirected = PLACEMENT_RESERVES, True
    else:
        match.participants.append(entry)
        placement, redirected = PLACEMENT_PARTICIPANTS, False

    match.reserves.extend(guests)
    return SignupResult(placement=placement, redirected=redirected, guests=list(guests))


def remove_entry(
    match: Match,
    entry_id: str,
    from_reserves: bool,
    capacity: int = MAX_PARTICIPANTS,
) -> RemovalResult:
    """Remove an entry from the named list, promoting a reserve if a seat frees up."""
    entries = match.reserves if from_reserves else match.participants
    index = _index_of(entries, entry_id)
    if index == -1:
        raise NotRegisteredError("That entry is not on the roster.")

    removed = entries.pop(index)
    promoted = None
    if not from_reserves:
        promoted = _promote_first_reserve(match, capacity)
    return RemovalResult(removed=removed, promoted=promoted)


def unsubscribe(
    match: Match, uid: str, capacity: int = MAX_PARTICIPANTS
) -> RemovalResult:
    """Take a registered user off the roster. Their guests stay."""
    list_name = find_user(match, uid)
    if list_name is None:
        raise NotRegisteredError()
    return remove_entry(
        match, uid, from_reserves=list_name == PLACEMENT_RESERVES, capacity=capacity
    )


def promote_reserve(
    match: Match, entry_id: str, capacity: int = MAX_PARTICIPANTS
) -> UserEntry:
    """Move a registered reserve into the participants."""
    index = _index_of(match.reserves, entry_id)
    if index == -1:
        raise NotRegisteredError("That reserve is not on the roster.")
    entry = match.reserves[index]
    if not isinstance(entry, UserEntry):
        raise ValidationError("Guests cannot be promoted to participants.")
    if is_full(match, capacity):
        raise CapacityExceededError()

    del match.reserves[index]
    match.participants.append(entry)
    return entry


def remove_guest(
    match: Match, guest_id: str, sponsor_uid: Optional[str] = None
) -> GuestEntry:
    """Drop a single guest from the reserves.

    When ``sponsor_uid`` is given the guest must belong to that sponsor.
    """
    index = _index_of(match.reserves, guest_id)
    if index == -1 or not isinstance(match.reserves[index], GuestEntry):
        raise NotRegisteredError("That guest is not on the roster.")
    guest = match.reserves[index]
    if sponsor_uid is not None and guest.sponsor_uid != sponsor_uid:
        raise UnauthorizedError("You can only remove guests you brought.")

    del match.reserves[index]
    return guest
