from abc import abstractmethod

import httpx

from shared.clients.ClientInterface import ClientInterface
from shared.clients.authz.models.RelationSchema import RelationSchema
from shared.clients.authz.models.Warrant import Subject, Warrant, WarrantOp, WarrantsPage, WriteResult
from shared.exceptions import BackendUnavailableError, StoreUnavailableError
from shared.helper.HelperConfig import HelperConfig


class AuthzClientInterface(ClientInterface):
    """Relation store backend: durable storage of direct warrants.

    The backend only stores and lists direct warrants. Relation inheritance is
    resolved by the AuthorizationEvaluator from the local RelationSchema, so
    every backend answers with the same semantics.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self.page_size = int(helper_config.get_number_val(f"{self.get_client_type().upper()}_PAGE_SIZE", default=100))

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "authz"
        """
        return "authz"

    def _get_unavailable_error(self) -> type[BackendUnavailableError]:
        return StoreUnavailableError

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_warrants(self) -> str:
        """
        Returns the endpoint path for warrant writes and listings.

        Returns:
            str: The endpoint path (e.g. "/fga/v1/warrants")
        """
        pass

    @abstractmethod
    def _get_endpoint_resource_types(self) -> str:
        """
        Returns the endpoint path for resource type (schema) definitions.

        Returns:
            str: The endpoint path (e.g. "/fga/v1/resource-types")
        """
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_write_payload(self, warrants: list[Warrant], op: WarrantOp) -> dict | list:
        """Build the backend-specific request body for a warrant write.

        Args:
            warrants (list[Warrant]): The warrants to write. A single-element list for point writes.
            op (WarrantOp): Create or delete.

        Returns:
            dict | list: JSON-serialisable request body.
        """
        pass

    @abstractmethod
    def get_list_params(
        self,
        resource_type: str | None,
        resource_id: str | None,
        relation: str | None,
        subject: Subject | None,
        cursor: str | None,
    ) -> dict:
        """Build the query parameters for one page of a warrant listing.

        Args:
            resource_type (str | None): Filter by resource type.
            resource_id (str | None): Filter by resource id.
            relation (str | None): Filter by relation.
            subject (Subject | None): Filter by subject.
            cursor (str | None): Pagination cursor from the previous page. None for the first page.

        Returns:
            dict: Query parameters.
        """
        pass

    @abstractmethod
    def get_consistency_headers(self, consistency_token: str | None) -> dict:
        """Build headers that request read-after-write consistency for a token.

        Args:
            consistency_token (str | None): Token returned by a previous write.

        Returns:
            dict: Extra headers. Empty when no token is given.
        """
        pass

    @abstractmethod
    def get_resource_types_payload(self, schema: RelationSchema) -> dict | list:
        """Translate the local relation schema into the backend's resource type format."""
        pass

    @abstractmethod
    def get_noop_write_statuses(self, op: WarrantOp) -> tuple[int, ...]:
        """Return the HTTP statuses with which the backend reports an idempotent no-op,
        e.g. 409 when creating a warrant that already exists.
        """
        pass

    ################ RESPONSE PARSER ##################
    @abstractmethod
    def extract_consistency_token(self, raw_response: dict) -> str | None:
        """Extract the read-after-write token from a write response."""
        pass

    @abstractmethod
    def extract_warrants_page(self, raw_response: dict) -> WarrantsPage:
        """Extract warrants and the next page cursor from a listing response."""
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_write_warrants(
        self,
        warrants: list[Warrant],
        op: WarrantOp,
        timeout: float | None = None,
    ) -> WriteResult:
        """Create or delete warrants in a single backend request.

        An already-present warrant on create, or an absent one on delete, is a
        successful no-op.

        Args:
            warrants (list[Warrant]): The warrants to write.
            op (WarrantOp): Create or delete.
            timeout (float | None): Caller-supplied timeout in seconds.

        Returns:
            WriteResult: Consistency token (if any) and the number of warrants sent.
        """
        noop_statuses = self.get_noop_write_statuses(op)
        resp = await self.do_request(
            method="POST",
            json=self.get_write_payload(warrants, op),
            endpoint=self._get_endpoint_warrants(),
            raise_on_error=True,
            accept_status=noop_statuses,
            timeout=timeout,
        )
        if resp.status_code in noop_statuses:
            self.logging.debug(
                "Warrant %s on %s is a no-op (status %d).",
                op.value, ", ".join(str(w) for w in warrants), resp.status_code,
            )
            return WriteResult(consistency_token=None, count=len(warrants), noop=True)
        token = self.parse_response(resp, self.extract_consistency_token)
        return WriteResult(consistency_token=token, count=len(warrants))

    async def do_list_warrants_page(
        self,
        resource_type: str | None = None,
        resource_id: str | None = None,
        relation: str | None = None,
        subject: Subject | None = None,
        cursor: str | None = None,
        consistency_token: str | None = None,
        timeout: float | None = None,
    ) -> WarrantsPage:
        """Fetch a single page of warrants matching the filters."""
        resp = await self.do_request(
            method="GET",
            params=self.get_list_params(resource_type, resource_id, relation, subject, cursor),
            endpoint=self._get_endpoint_warrants(),
            additional_headers=self.get_consistency_headers(consistency_token),
            raise_on_error=True,
            timeout=timeout,
        )
        return self.parse_response(resp, self.extract_warrants_page)

    async def do_list_warrants(
        self,
        resource_type: str | None = None,
        resource_id: str | None = None,
        relation: str | None = None,
        subject: Subject | None = None,
        consistency_token: str | None = None,
        timeout: float | None = None,
    ) -> list[Warrant]:
        """List ALL warrants matching the filters, paginating automatically.

        Runs a loop driven by the next page cursor until the backend signals
        there are no more pages.

        Returns:
            list[Warrant]: All matching direct warrants.
        """
        warrants: list[Warrant] = []
        cursor: str | None = None
        page = 1
        while True:
            page_result = await self.do_list_warrants_page(
                resource_type=resource_type,
                resource_id=resource_id,
                relation=relation,
                subject=subject,
                cursor=cursor,
                consistency_token=consistency_token,
                timeout=timeout,
            )
            warrants.extend(page_result.warrants)
            self.logging.debug(
                "Fetched warrants page %d from %s, total so far: %d",
                page, self.get_engine_name(), len(warrants),
            )
            cursor = page_result.next_page
            if not cursor:
                break
            page += 1
        return warrants

    async def do_define_resource_types(self, schema: RelationSchema) -> httpx.Response:
        """Push the local relation schema to the backend.

        Args:
            schema (RelationSchema): The schema to publish.

        Returns:
            httpx.Response: The backend response.
        """
        return await self.do_request(
            method="PUT",
            json=self.get_resource_types_payload(schema),
            endpoint=self._get_endpoint_resource_types(),
            raise_on_error=True,
        )
