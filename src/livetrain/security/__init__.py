"""Route protection decorators.

    from livetrain.security import login_required, requires
"""

from livetrain.security.decorators import login_required, requires

__all__ = ["login_required", "requires"]
