"""
JSON model documents.

A document holds everything needed to rebuild a model without its training
code: the model class, its constructor config and every parameter and
buffer as a shape plus flat value list.

    {
        "name": "trend",
        "format": "marketlens-model/1",
        "modelClass": "TrendClassifier",
        "config": {...},
        "weights": {"lstm_layers.0.weight_ih_l0": {"shape": [400, 5], "dtype": "float32", "data": [...]}, ...},
        "savedAt": "2024-01-01T00:00:00+00:00"
    }

float32 values survive the round trip through JSON doubles exactly, so a
reloaded model predicts identically.
"""

import json
from datetime import datetime, timezone
from typing import Any, Dict

import torch
import torch.nn as nn

from .factory import MODEL_CLASSES

DOCUMENT_FORMAT = 'marketlens-model/1'


def model_to_document(name: str, model: nn.Module) -> str:
    """Serialize model topology and weights to a JSON string"""
    weights = {}
    for key, tensor in model.state_dict().items():
        tensor = tensor.detach().cpu()
        weights[key] = {
            'shape': list(tensor.shape),
            'dtype': str(tensor.dtype).replace('torch.', ''),
            'data': tensor.reshape(-1).tolist(),
        }

    document = {
        'name': name,
        'format': DOCUMENT_FORMAT,
        'modelClass': type(model).__name__,
        'config': model.get_config(),
        'weights': weights,
        'savedAt': datetime.now(timezone.utc).isoformat(),
    }
    return json.dumps(document)


def model_from_document(document: str) -> nn.Module:
    """
    Rebuild a model from a JSON document.

    Raises:
        ValueError: Document is malformed or does not match its model class
    """
    try:
        payload: Dict[str, Any] = json.loads(document)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid model JSON: {e}") from e
    if not isinstance(payload, dict):
        raise ValueError(f"Model document must be a JSON object, got {type(payload).__name__}")

    if payload.get('format') != DOCUMENT_FORMAT:
        raise ValueError(f"Unsupported model document format: {payload.get('format')!r}")

    model_class = MODEL_CLASSES.get(payload.get('modelClass'))
    if model_class is None:
        raise ValueError(f"Unknown model class: {payload.get('modelClass')!r}")

    try:
        model = model_class(**payload.get('config', {}))

        state_dict = {}
        for key, entry in payload.get('weights', {}).items():
            dtype = getattr(torch, entry.get('dtype', 'float32'))
            state_dict[key] = torch.tensor(entry['data'], dtype=dtype).reshape(entry['shape'])

        # strict: missing or unexpected keys mean the document is for another topology
        model.load_state_dict(state_dict, strict=True)
    except (KeyError, TypeError, RuntimeError, AttributeError) as e:
        raise ValueError(f"Model document does not match {model_class.__name__}: {e}") from e

    model.eval()
    return model
