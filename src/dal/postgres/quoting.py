def quote_identifier(name: str) -> str:
    """Quote a PostgreSQL identifier with double quotes, doubling embedded quotes."""
    if name is None or not str(name).strip():
        raise ValueError("Identifier must be a non-empty string.")
    return '"' + str(name).replace('"', '""') + '"'
