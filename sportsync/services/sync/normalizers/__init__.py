"""Pure payload -> canonical record converters, one module per provider."""
