"""Authorization evaluator.

Answers point checks and set queries from the subject's direct warrants and
the inheritance closure of the relation schema. Both operations read the
same warrants and apply the same closure, so list_accessible returns exactly
the resources check would approve.
"""

from services.authz.RelationStore import RelationStore
from shared.clients.authz.models.Warrant import Subject
from shared.helper.HelperConfig import HelperConfig


class AuthorizationEvaluator:
    """ReBAC point checks and set queries. Holds no state between calls."""

    def __init__(self, helper_config: HelperConfig, store: RelationStore) -> None:
        self.logging = helper_config.get_logger()
        self._store = store

    async def check(
        self,
        subject: Subject,
        relation: str,
        resource_type: str,
        resource_id: str,
        consistency_token: str | None = None,
        timeout: float | None = None,
    ) -> bool:
        """Is `subject` related to the resource via `relation`, directly or by inheritance?

        Args:
            subject (Subject): The principal.
            relation (str): The relation to check (e.g. "viewer").
            resource_type (str): Type of the resource (e.g. "document").
            resource_id (str): Identifier of the resource.
            consistency_token (str | None): Token of a prior write the read must observe.
            timeout (float | None): Caller-supplied timeout in seconds.

        Returns:
            bool: True if a warrant for `relation` or any relation implying it exists.
                  Unknown subjects and resources have no warrants and yield False.

        Raises:
            InvalidRelationError: If the relation is not declared for the resource type.
            StoreUnavailableError: If the store fails.
            RequestTimeoutError: If the read exceeds its timeout.
        """
        granting = self._store.schema.get_implying_relations(resource_type, relation)
        warrants = await self._store.list_warrants(
            resource_type=resource_type,
            resource_id=resource_id,
            subject=subject,
            consistency_token=consistency_token,
            timeout=timeout,
        )
        allowed = any(
            w.resource_type == resource_type
            and w.resource_id == resource_id
            and w.relation in granting
            and w.subject == subject
            for w in warrants
        )
        self.logging.debug(
            "check %s:%s#%s@%s -> %s", resource_type, resource_id, relation, subject, allowed,
        )
        return allowed

    async def list_accessible(
        self,
        subject: Subject,
        relation: str,
        resource_type: str,
        consistency_token: str | None = None,
        timeout: float | None = None,
    ) -> set[str]:
        """Every resource of `resource_type` for which check(subject, relation, ·) is true.

        Returns:
            set[str]: Resource ids. Empty for a subject without warrants.

        Raises:
            InvalidRelationError: If the relation is not declared for the resource type.
            StoreUnavailableError: If the store fails.
            RequestTimeoutError: If the read exceeds its timeout.
        """
        granting = self._store.schema.get_implying_relations(resource_type, relation)
        warrants = await self._store.list_warrants(
            resource_type=resource_type,
            subject=subject,
            consistency_token=consistency_token,
            timeout=timeout,
        )
        accessible = {
            w.resource_id
            for w in warrants
            if w.resource_type == resource_type and w.relation in granting and w.subject == subject
        }
        self.logging.debug(
            "list_accessible %s#%s@%s -> %d resource(s)", resource_type, relation, subject, len(accessible),
        )
        return accessible
