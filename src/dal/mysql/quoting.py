def quote_identifier(name: str) -> str:
    """Quote a MySQL identifier with backticks, doubling embedded backticks."""
    if name is None or not str(name).strip():
        raise ValueError("Identifier must be a non-empty string.")
    return "`" + str(name).replace("`", "``") + "`"
