import logging
import threading
from typing import Dict, List, Optional

import numpy as np
from sentence_transformers import SentenceTransformer

from ..config import get_settings
from ..constants import ErrorMessages
from ..exceptions import EmbeddingError

logger = logging.getLogger(__name__)

# One loaded model per name; loading is slow, so it happens at most once per process
_models: Dict[str, SentenceTransformer] = {}
_models_lock = threading.Lock()


def load_embedding_model(model_name: Optional[str] = None) -> SentenceTransformer:
    model_name = model_name or get_settings().EMBEDDING_MODEL_NAME
    with _models_lock:
        model = _models.get(model_name)
        if model is None:
            try:
                model = SentenceTransformer(model_name)
            except Exception as e:
                logger.error(f"Failed to load embedding model {model_name}: {e}")
                raise EmbeddingError(f"Could not load embedding model {model_name}: {e}") from e
            _models[model_name] = model
            logger.info(f"Embedding model {model_name} loaded")
    return model


def get_embeddings(texts: List[str], model_name: Optional[str] = None) -> Optional[List[List[float]]]:
    """Encodes ``texts`` with the local model. None for invalid input or a failed encode."""
    if not texts or not all(isinstance(text, str) and text.strip() for text in texts):
        return None

    model = load_embedding_model(model_name)
    try:
        vectors = model.encode(texts, convert_to_numpy=True, show_progress_bar=False)
    except Exception as e:
        logger.error(f"{ErrorMessages.EMBEDDING_FAILED}: {e}")
        return None

    if not np.isfinite(vectors).all():
        logger.error(f"{ErrorMessages.EMBEDDING_FAILED}: NaN or infinite values in output")
        return None
    return vectors.tolist()
