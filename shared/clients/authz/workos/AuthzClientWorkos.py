from shared.clients.authz.AuthzClientInterface import AuthzClientInterface
from shared.clients.authz.models.RelationSchema import RelationSchema
from shared.clients.authz.models.Warrant import Subject, Warrant, WarrantOp, WarrantsPage
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class AuthzClientWorkos(AuthzClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default="https://api.workos.com", val_type="string")
        self._api_key = self.get_config_val("API_KEY", default=None, val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Workos"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default="https://api.workos.com"),
            EnvConfig(env_key="API_KEY", val_type="string", default=None),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        return {"Authorization": f"Bearer {self._api_key}"}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        # no dedicated health endpoint, an authenticated schema read proves reachability
        return "/fga/v1/resource-types?limit=1"

    def _get_endpoint_warrants(self) -> str:
        return "/fga/v1/warrants"

    def _get_endpoint_resource_types(self) -> str:
        return "/fga/v1/resource-types"

    ##########################################
    ########### PAYLOAD BUILDER ##############
    ##########################################

    def _warrant_to_json(self, warrant: Warrant) -> dict:
        return {
            "resource_type": warrant.resource_type,
            "resource_id": warrant.resource_id,
            "relation": warrant.relation,
            "subject": {
                "resource_type": warrant.subject.resource_type,
                "resource_id": warrant.subject.resource_id,
            },
        }

    def get_write_payload(self, warrants: list[Warrant], op: WarrantOp) -> dict | list:
        # a single warrant is sent as an object, batches as an array
        items = [{"op": op.value, **self._warrant_to_json(w)} for w in warrants]
        return items[0] if len(items) == 1 else items

    def get_list_params(
        self,
        resource_type: str | None,
        resource_id: str | None,
        relation: str | None,
        subject: Subject | None,
        cursor: str | None,
    ) -> dict:
        params: dict = {"limit": self.page_size}
        if resource_type:
            params["resource_type"] = resource_type
        if resource_id:
            params["resource_id"] = resource_id
        if relation:
            params["relation"] = relation
        if subject:
            params["subject_type"] = subject.resource_type
            params["subject_id"] = subject.resource_id
        if cursor:
            params["after"] = cursor
        return params

    def get_consistency_headers(self, consistency_token: str | None) -> dict:
        if consistency_token:
            return {"Warrant-Token": consistency_token}
        return {}

    def get_resource_types_payload(self, schema: RelationSchema) -> dict | list:
        payload = []
        for resource_type in schema.resource_types:
            relations: dict = {}
            for name, rule in resource_type.relations.items():
                if not rule.inherit_if:
                    relations[name] = {}
                elif len(rule.inherit_if) == 1:
                    relations[name] = {"inherit_if": rule.inherit_if[0]}
                else:
                    relations[name] = {
                        "inherit_if": "any_of",
                        "rules": [{"inherit_if": parent} for parent in rule.inherit_if],
                    }
            payload.append({"type": resource_type.type, "relations": relations})
        return payload

    def get_noop_write_statuses(self, op: WarrantOp) -> tuple[int, ...]:
        if op == WarrantOp.CREATE:
            return (409,)
        return (404,)

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def extract_consistency_token(self, raw_response: dict) -> str | None:
        return raw_response.get("warrant_token")

    def extract_warrants_page(self, raw_response: dict) -> WarrantsPage:
        warrants: list[Warrant] = []
        for item in raw_response.get("data", []):
            subject = item.get("subject") or {}
            warrants.append(Warrant(
                resource_type=item["resource_type"],
                resource_id=item["resource_id"],
                relation=item["relation"],
                subject=Subject(
                    resource_type=subject.get("resource_type", "user"),
                    resource_id=subject["resource_id"],
                ),
            ))
        next_page = (raw_response.get("list_metadata") or {}).get("after")
        return WarrantsPage(warrants=warrants, next_page=next_page)
