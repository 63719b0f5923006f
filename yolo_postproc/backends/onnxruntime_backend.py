from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Tuple, Union

import numpy as np

LOGGER = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass(frozen=True)
class OnnxRuntimeBackendConfig:
    """
    Configuration for ONNX Runtime inference.

    - providers: ORT execution providers in priority order, passed through
      unchanged (None lets ORT pick its default)
    - input_name/output_name: override auto-selected I/O names if needed
    """

    providers: Optional[Sequence[str]] = None
    input_name: Optional[str] = None
    output_name: Optional[str] = None


class OnnxRuntimeBackend:
    """
    ONNX Runtime session wrapper.

    Expects an NCHW float32 blob shaped (1, 3, H, W) and returns the selected
    output as a NumPy array. Also exposes the model's custom metadata map,
    which carries `imgsz`, `names`, `description` and `version` for
    Ultralytics exports.
    """

    def __init__(self, model_path: PathLike, cfg: OnnxRuntimeBackendConfig = OnnxRuntimeBackendConfig()):
        try:
            import onnxruntime as ort  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError(
                "onnxruntime is required for the ONNX backend. Install it with `pip install onnxruntime` "
                "(or `onnxruntime-gpu`)."
            ) from e

        self._ort = ort
        self.model_path = Path(model_path)
        if not self.model_path.exists():
            raise FileNotFoundError(str(self.model_path))

        sess_opts = ort.SessionOptions()
        providers = list(cfg.providers) if cfg.providers is not None else None
        self.session = ort.InferenceSession(str(self.model_path), sess_options=sess_opts, providers=providers)

        self.input_name = cfg.input_name or self.session.get_inputs()[0].name
        self.output_name = cfg.output_name or self.session.get_outputs()[0].name
        LOGGER.info("Loaded %s with providers %s", self.model_path.name, ", ".join(self.providers_in_use))

    def _require_session(self):
        if self.session is None:
            raise RuntimeError(f"ONNX Runtime session for {self.model_path} has been closed.")
        return self.session

    @property
    def providers_in_use(self) -> Sequence[str]:
        return tuple(self._require_session().get_providers())

    @property
    def available_providers(self) -> Sequence[str]:
        return tuple(self._ort.get_available_providers())

    @property
    def input_shape(self) -> Tuple[Any, ...]:
        # Dynamic axes come back as strings or None.
        for inp in self._require_session().get_inputs():
            if inp.name == self.input_name:
                return tuple(inp.shape)
        raise KeyError(self.input_name)

    def metadata(self) -> Dict[str, str]:
        meta = self._require_session().get_modelmeta()
        return dict(meta.custom_metadata_map)

    def infer(self, blob: np.ndarray, extra_inputs: Optional[Dict[str, Any]] = None) -> np.ndarray:
        session = self._require_session()
        inputs: Dict[str, Any] = {self.input_name: blob}
        if extra_inputs:
            inputs.update(extra_inputs)
        outputs = session.run([self.output_name], inputs)
        return outputs[0]

    def close(self) -> None:
        # ORT frees native resources when the session is garbage collected.
        self.session = None
