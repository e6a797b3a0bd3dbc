"""
Amount formatting for GNF, which has no fractional subunit
"""

# fr-GN groups thousands with a narrow no-break space
GROUP_SEPARATOR = "\u202f"


def format_gnf(amount: int) -> str:
    """Format a whole GNF amount the way fr-GN does: ``6 000 000``"""
    return f"{int(amount):,}".replace(",", GROUP_SEPARATOR)
