from shared.clients.authz.models.RelationSchema import RelationSchema
from shared.helper.HelperConfig import HelperConfig


def load_relation_schema(helper_config: HelperConfig) -> RelationSchema:
    """Load the relation schema from AUTHZ_SCHEMA_FILE, or the built-in
    document/user schema when the variable is not set.

    Raises:
        FileNotFoundError: If the configured file does not exist.
        pydantic.ValidationError: If the file describes an invalid schema.
    """
    logger = helper_config.get_logger()
    if not helper_config.get_string_val("AUTHZ_SCHEMA_FILE", default=""):
        logger.info("AUTHZ_SCHEMA_FILE not set, using the built-in relation schema.")
        return RelationSchema.default()
    path = helper_config.get_path_val("AUTHZ_SCHEMA_FILE")
    schema = RelationSchema.from_file(path)
    logger.info(
        "Loaded relation schema from %s (%s).", path, ", ".join(t.type for t in schema.resource_types),
    )
    return schema
