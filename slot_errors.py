"""
Edgeslot Error Types

All errors raised while planning edge slots derive from SlotMapError so a
caller driving a whole compile can catch one type.
"""


class SlotMapError(Exception):
    """Base exception for slot planning errors"""
    pass


class InvalidConfiguration(SlotMapError):
    """Bitmap capacity or tolerances out of range"""
    pass


class SlotExhaustion(SlotMapError):
    """The coverage bitmap has no free slot left for an edge or block"""
    pass


class CFGError(SlotMapError):
    """Malformed control-flow graph input"""
    pass
