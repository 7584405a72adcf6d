"""
Request dependencies
"""

from fastapi import Request

from ..system import MicrofinanceSystem


def get_system(request: Request) -> MicrofinanceSystem:
    """System instance owned by the running application"""
    return request.app.state.system
