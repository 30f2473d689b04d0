"""Relation store.

Validates warrants against the relation schema and persists them through the
configured backend client. Writes are idempotent and are the only operation
retried automatically.
"""

import asyncio

from shared.clients.authz.AuthzClientInterface import AuthzClientInterface
from shared.clients.authz.models.RelationSchema import RelationSchema
from shared.clients.authz.models.Warrant import Subject, Warrant, WarrantOp, WriteResult
from shared.exceptions import RequestTimeoutError, StoreUnavailableError
from shared.helper.HelperConfig import HelperConfig


class RelationStore:
    """Schema-checked access to the durable warrant graph."""

    def __init__(
        self,
        helper_config: HelperConfig,
        authz_client: AuthzClientInterface,
        schema: RelationSchema,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._client = authz_client
        self.schema = schema
        self._write_retries = int(helper_config.get_number_val("AUTHZ_WRITE_RETRIES", default=3))
        self._write_backoff = float(helper_config.get_number_val("AUTHZ_WRITE_RETRY_BACKOFF", default=0.5))

    ##########################################
    ################ WRITES ##################
    ##########################################

    async def write(self, warrant: Warrant, op: WarrantOp, timeout: float | None = None) -> WriteResult:
        """Create or delete a single warrant.

        Creating a present warrant or deleting an absent one succeeds as a no-op.

        Args:
            warrant (Warrant): The warrant to write.
            op (WarrantOp): Create or delete.
            timeout (float | None): Caller-supplied timeout per attempt, in seconds.

        Returns:
            WriteResult: Consistency token of the write, if the backend issues one.

        Raises:
            InvalidRelationError: If the relation is not declared for the resource type.
            StoreUnavailableError: If the backend still fails after all retries.
            RequestTimeoutError: If the last attempt timed out.
        """
        return await self.write_batch([warrant], op, timeout=timeout)

    async def write_batch(self, warrants: list[Warrant], op: WarrantOp, timeout: float | None = None) -> WriteResult:
        """Create or delete several warrants in one backend request.

        See write() for semantics. An empty batch is a no-op.
        """
        if not warrants:
            return WriteResult(count=0, noop=True)
        for warrant in warrants:
            self.schema.validate_relation(warrant.resource_type, warrant.relation)

        result = await self._write_with_retry(warrants, op, timeout)
        if result.noop and len(warrants) > 1:
            # the backend may reject a whole batch when one member is already
            # applied, so fall back to point writes to apply the rest
            self.logging.debug("Batch %s reported as no-op, retrying as %d point writes.", op.value, len(warrants))
            token = None
            for warrant in warrants:
                single = await self._write_with_retry([warrant], op, timeout)
                token = single.consistency_token or token
            result = WriteResult(consistency_token=token, count=len(warrants))

        self.logging.info(
            "Warrant %s: %s", op.value, ", ".join(str(w) for w in warrants),
        )
        return result

    async def _write_with_retry(self, warrants: list[Warrant], op: WarrantOp, timeout: float | None) -> WriteResult:
        attempt = 0
        while True:
            try:
                return await self._client.do_write_warrants(warrants, op, timeout=timeout)
            except (StoreUnavailableError, RequestTimeoutError) as exc:
                attempt += 1
                if attempt > self._write_retries:
                    self.logging.error(
                        "Warrant %s failed after %d attempts: %s", op.value, attempt, exc,
                    )
                    raise
                delay = self._write_backoff * (2 ** (attempt - 1))
                self.logging.warning(
                    "Warrant %s failed (attempt %d of %d), retrying in %.2fs: %s",
                    op.value, attempt, self._write_retries + 1, delay, exc,
                )
                await asyncio.sleep(delay)

    ##########################################
    ################ READS ###################
    ##########################################

    async def list_warrants(
        self,
        resource_type: str,
        resource_id: str | None = None,
        relation: str | None = None,
        subject: Subject | None = None,
        consistency_token: str | None = None,
        timeout: float | None = None,
    ) -> list[Warrant]:
        """List direct warrants on a resource type, optionally narrowed to one
        resource, relation or subject. Never retried.

        Raises:
            InvalidRelationError: If the resource type or relation is not declared.
            StoreUnavailableError: If the backend fails.
            RequestTimeoutError: If the request exceeds its timeout.
        """
        if relation is None:
            self.schema.get_type(resource_type)
        else:
            self.schema.validate_relation(resource_type, relation)
        return await self._client.do_list_warrants(
            resource_type=resource_type,
            resource_id=resource_id,
            relation=relation,
            subject=subject,
            consistency_token=consistency_token,
            timeout=timeout,
        )
