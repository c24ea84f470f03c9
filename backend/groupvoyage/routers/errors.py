"""Maps pipeline exceptions onto HTTP errors."""

import logging
from contextlib import contextmanager

from fastapi import HTTPException

from groupvoyage.services.errors import (
    GenerationError,
    GroupNotFoundError,
    InputValidationError,
    MemberNotFoundError,
    NotReadyError,
    PersistenceError,
)

logger = logging.getLogger(__name__)


@contextmanager
def pipeline_errors():
    try:
        yield
    except InputValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except (GroupNotFoundError, MemberNotFoundError, NotReadyError) as e:
        raise HTTPException(status_code=404, detail=str(e))
    except GenerationError as e:
        logger.error(f"Generation failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))
    except PersistenceError as e:
        logger.error(f"Persistence failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to save changes")
