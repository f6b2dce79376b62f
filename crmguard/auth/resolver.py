"""
Actor context resolution.

Builds the live Actor from three sources:
1. The session claims (role, tenant, super-admin flag)
2. The static role table (catalog.py)
3. Optional per-actor grants from the dynamic permission store

Dynamic grants only ever add. If the store is missing, slow, or failing,
the actor resolves with the static table alone.

State machine:
    UNINITIALIZED -> LOADING -> RESOLVED | RESOLVED_STATIC_ONLY

While LOADING every guard decision is PENDING.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Iterable

from crmguard.auth.actor import Actor, ActorIdentity, SessionClaims, Target
from crmguard.auth.authorizer import Action, Authorizer
from crmguard.auth.catalog import Permission, expand_permission
from crmguard.auth.errors import NotAuthenticated
from crmguard.auth.guards import GuardDecision
from crmguard.auth.queries import GUARD_FLAGS
from crmguard.config import get_settings
from crmguard.integrations.sentry import capture_exception
from crmguard.storage.permissions import PermissionStore

logger = logging.getLogger(__name__)


class ResolutionState(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    RESOLVED = "resolved"
    RESOLVED_STATIC_ONLY = "resolved_static_only"


# =============================================================================
# Permission cache
# =============================================================================


@dataclass(frozen=True)
class CacheLoad:
    """Result of PermissionCache.load."""

    permissions: frozenset[Permission]
    fetched: bool          # False when the store failed (static only)
    stale: bool = False    # Invalidated while the fetch was in flight


Fetcher = Callable[[], Awaitable["frozenset[Permission] | None"]]


class PermissionCache:
    """
    Dynamic grants per actor identity, plus the fetches currently running.

    Invalidation is synchronous and bumps a generation counter; a fetch
    that started under an older generation is reported stale instead of
    being stored. Failed fetches are never stored.

    It also remembers which identity each actor was last seen with, so a
    role change or tenant switch drops the old grants even when every
    request builds its own resolver.
    """

    def __init__(self):
        self._entries: dict[ActorIdentity, frozenset[Permission]] = {}
        self._epoch = 0
        self._generations: dict[str, int] = {}
        self._inflight: dict[tuple[ActorIdentity, tuple[int, int]], asyncio.Future] = {}
        self._current: dict[str, ActorIdentity] = {}

    def generation(self, actor_id: str) -> tuple[int, int]:
        return (self._epoch, self._generations.get(actor_id, 0))

    def get(self, identity: ActorIdentity) -> frozenset[Permission] | None:
        return self._entries.get(identity)

    def identity_of(self, actor_id: str) -> ActorIdentity | None:
        """The identity an actor was last seen with, if it is still signed in."""
        return self._current.get(actor_id)

    @property
    def inflight_count(self) -> int:
        return len(self._inflight)

    def invalidate(self, actor_id: str | None = None) -> None:
        """Drop cached grants for one actor, or for everyone."""
        if actor_id is None:
            self._entries.clear()
            self._epoch += 1
            logger.debug(f"Invalidated all cached permissions (epoch {self._epoch})")
            return

        for identity in [i for i in self._entries if i.actor_id == actor_id]:
            del self._entries[identity]
        self._generations[actor_id] = self._generations.get(actor_id, 0) + 1
        logger.debug(f"Invalidated cached permissions for {actor_id}")

    def switch_to(self, identity: ActorIdentity) -> bool:
        """
        Record the identity an actor is now using.

        Returns True if it differs from the last one seen, in which case
        the actor's grants have already been invalidated.
        """
        previous = self._current.get(identity.actor_id)
        self._current[identity.actor_id] = identity
        if previous is None or previous == identity:
            return False
        self.invalidate(identity.actor_id)
        return True

    def forget(self, actor_id: str) -> None:
        """Invalidate and stop tracking an actor (logout)."""
        self.invalidate(actor_id)
        self._current.pop(actor_id, None)

    async def load(self, identity: ActorIdentity, fetch: Fetcher) -> CacheLoad:
        """
        Return cached grants, or fetch them.

        Concurrent loads for the same identity and generation share a
        single fetch. A waiter being cancelled doesn't cancel the fetch.
        """
        generation = self.generation(identity.actor_id)

        cached = self._entries.get(identity)
        if cached is not None:
            return CacheLoad(cached, fetched=True)

        key = (identity, generation)
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(fetch())
            self._inflight[key] = task
            task.add_done_callback(lambda _: self._inflight.pop(key, None))

        permissions = await asyncio.shield(task)

        if self.generation(identity.actor_id) != generation:
            return CacheLoad(frozenset(), fetched=False, stale=True)
        if permissions is None:
            return CacheLoad(frozenset(), fetched=False)

        self._entries[identity] = permissions
        return CacheLoad(permissions, fetched=True)


# =============================================================================
# Snapshot (what guard surfaces read synchronously)
# =============================================================================


@dataclass(frozen=True)
class ActorSnapshot:
    """Point-in-time view of the resolver for synchronous guard checks."""

    state: ResolutionState
    actor: Actor | None = None

    @property
    def is_loading(self) -> bool:
        return self.state is ResolutionState.LOADING

    @property
    def is_resolved(self) -> bool:
        return self.actor is not None and self.state in (
            ResolutionState.RESOLVED,
            ResolutionState.RESOLVED_STATIC_ONLY,
        )

    def decide(self, permission: Permission | str) -> GuardDecision:
        if not self.is_resolved:
            return GuardDecision.PENDING
        return GuardDecision.of(self.actor.can(permission))

    def decide_flag(self, flag: str) -> GuardDecision:
        """Decide a named guard flag, e.g. "can_create" or "has_any_permission"."""
        if flag not in GUARD_FLAGS and flag != "has_any_permission":
            raise ValueError(f"Unknown guard flag: {flag}")
        if not self.is_resolved:
            return GuardDecision.PENDING
        return GuardDecision.of(getattr(self.actor.guard, flag))

    def decide_action(
        self,
        target: Target,
        action: Action | str,
        authorizer: Authorizer | None = None,
    ) -> GuardDecision:
        if not self.is_resolved:
            return GuardDecision.PENDING
        authorizer = authorizer or Authorizer()
        return GuardDecision.of(authorizer.can_perform(self.actor, target, action))


# =============================================================================
# Resolver
# =============================================================================


class ActorContextResolver:
    """
    Resolves the current session into an Actor.

    Usage:
        resolver = ActorContextResolver(store=MetadataPermissionStore(storage))
        resolver.set_session(SessionClaims(actor_id="u1", role="manager", tenant_id="t1"))
        actor = await resolver.resolve()

        # on role change / tenant switch, just set the new claims
        resolver.set_session(new_claims)
        # on logout
        resolver.logout()
    """

    def __init__(
        self,
        store: PermissionStore | None = None,
        cache: PermissionCache | None = None,
        timeout: float | None = None,
    ):
        self.store = store
        self.cache = cache or PermissionCache()
        self.timeout = timeout if timeout is not None else get_settings().permission_fetch_timeout_seconds

        self._session: SessionClaims | None = None
        self._actor: Actor | None = None
        self._state = ResolutionState.UNINITIALIZED

    @property
    def state(self) -> ResolutionState:
        return self._state

    @property
    def is_loading(self) -> bool:
        return self._state is ResolutionState.LOADING

    @property
    def session(self) -> SessionClaims | None:
        return self._session

    @property
    def actor(self) -> Actor | None:
        """The resolved actor, or None while not resolved."""
        return self._actor

    def snapshot(self) -> ActorSnapshot:
        return ActorSnapshot(state=self._state, actor=self._actor)

    # -------------------------------------------------------------------------
    # Session changes
    # -------------------------------------------------------------------------

    def set_session(self, session: SessionClaims | None) -> None:
        """
        Switch to a new session (None = logged out).

        Any change of identity (user, role, or tenant) invalidates the
        previous actor's cached grants before this returns.
        """
        if session is not None:
            # Fail loudly on corrupt claims before anything else changes
            Actor.from_session(session)

        previous = self._session
        if previous is not None and session is not None and previous.identity == session.identity:
            return

        if previous is not None and (session is None or session.actor_id != previous.actor_id):
            self.cache.forget(previous.actor_id)
            reason = "logout" if session is None else "identity change"
            logger.info(f"Session for {previous.actor_id} ended ({reason})")

        # The cache is shared across resolvers, so it decides whether this
        # identity differs from the last one seen for the actor
        if session is not None and self.cache.switch_to(session.identity):
            logger.info(f"Identity of {session.actor_id} changed to {session.role}@{session.tenant_id}")

        self._session = session
        self._actor = None
        self._state = ResolutionState.LOADING if session else ResolutionState.UNINITIALIZED

    def logout(self) -> None:
        self.set_session(None)

    def invalidate(self, actor_id: str | None = None) -> None:
        """Drop cached grants; if they were the current actor's, go back to LOADING."""
        self.cache.invalidate(actor_id)
        if self._session is not None and actor_id in (None, self._session.actor_id):
            self._actor = None
            self._state = ResolutionState.LOADING

    # -------------------------------------------------------------------------
    # Resolution
    # -------------------------------------------------------------------------

    async def resolve(self) -> Actor:
        """
        Resolve the current session into an Actor.

        Raises:
            NotAuthenticated: no session is set
        """
        while True:
            session = self._session
            if session is None:
                raise NotAuthenticated("No active session to resolve an actor from")

            identity = session.identity
            if self.store is None:
                load = CacheLoad(frozenset(), fetched=False)
            else:
                load = await self.cache.load(identity, lambda: self._fetch(identity))

            if load.stale or self._session is not session:
                logger.debug(f"Discarding stale permissions for {identity.actor_id}")
                continue

            actor = Actor.from_session(session, load.permissions)
            self._actor = actor
            self._state = (
                ResolutionState.RESOLVED if load.fetched
                else ResolutionState.RESOLVED_STATIC_ONLY
            )
            return actor

    async def _fetch(self, identity: ActorIdentity) -> frozenset[Permission] | None:
        """Fetch dynamic grants. Returns None on failure; never raises."""
        try:
            raw = await asyncio.wait_for(
                self.store.fetch_permissions(identity.actor_id, identity.tenant_id),
                timeout=self.timeout,
            )
        except Exception as e:
            logger.warning(
                f"Permission fetch failed for {identity.actor_id}, "
                f"falling back to role defaults: {e!r}"
            )
            capture_exception(e, actor_id=identity.actor_id, tenant_id=identity.tenant_id)
            return None

        return known_permissions(raw, identity.actor_id)


def known_permissions(raw: Iterable[str], actor_id: str = "") -> frozenset[Permission]:
    """
    Catalog permissions named by stored grants, umbrellas expanded.

    Anything that names nothing in the catalog is dropped with a warning.
    """
    granted: set[Permission] = set()
    unknown: list[str] = []
    for value in raw or ():
        expanded = expand_permission(value)
        if expanded is None:
            unknown.append(str(value))
        else:
            granted.update(expanded)

    if unknown:
        logger.warning(f"Ignoring unknown permissions for {actor_id}: {sorted(unknown)}")

    return frozenset(granted)
