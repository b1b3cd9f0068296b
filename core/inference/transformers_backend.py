# Path: core/inference/transformers_backend.py
# Purpose: Run an image-text-to-text model through Hugging Face transformers.
# Layer: core/inference.
# Details: Streams tokens with TextIteratorStreamer while model.generate runs on a worker thread.

from __future__ import annotations

import logging
from threading import Thread
from typing import Any, Dict, List, Optional

from PIL import Image

from config import InferenceSettings
from core.errors import EngineNotReadyError, InferenceError

from .base import (
    MSG_LOADING_PROCESSOR,
    MSG_MODEL_LOADED,
    MSG_PROCESSOR_LOADED,
    ModelHandle,
    ProgressCallback,
    TextCallback,
    VisionLanguageBackend,
    emit_progress,
)

logger = logging.getLogger(__name__)


class TransformersBackend(VisionLanguageBackend):
    """Vision-language backend using ``AutoProcessor`` and an image-text-to-text model."""

    def __init__(self, settings: Optional[InferenceSettings] = None) -> None:
        self.settings = settings or InferenceSettings()
        self._handle: Optional[ModelHandle] = None

    @property
    def is_loaded(self) -> bool:
        return self._handle is not None

    def load(self, progress: Optional[ProgressCallback] = None) -> None:
        import torch
        from transformers import AutoModelForCausalLM, AutoModelForImageTextToText, AutoProcessor

        model_id = self.settings.model_id
        remote = self.settings.trust_remote_code

        emit_progress(progress, MSG_LOADING_PROCESSOR)
        processor = AutoProcessor.from_pretrained(model_id, trust_remote_code=remote)

        emit_progress(progress, MSG_PROCESSOR_LOADED)
        dtype = torch.float16 if self.settings.device.startswith("cuda") else torch.float32
        try:
            model = AutoModelForImageTextToText.from_pretrained(model_id, torch_dtype=dtype, trust_remote_code=remote)
        except ValueError:
            # Repositories with custom modeling code register under the causal-LM auto class.
            logger.info("%s is not an image-text-to-text model class; falling back to causal LM", model_id)
            model = AutoModelForCausalLM.from_pretrained(model_id, torch_dtype=dtype, trust_remote_code=remote)
        model.to(self.settings.device)
        model.eval()

        self._handle = ModelHandle(processor=processor, model=model, device=self.settings.device)
        emit_progress(progress, MSG_MODEL_LOADED)

    def generate(self, image: Image.Image, messages: List[Dict[str, str]], on_text: TextCallback) -> str:
        import torch
        from transformers import TextIteratorStreamer

        handle = self._handle
        if handle is None:
            raise EngineNotReadyError("Model/processor not loaded")
        processor, model = handle.processor, handle.model

        prompt = processor.apply_chat_template(messages, add_generation_prompt=True, tokenize=False)
        inputs = processor(images=image, text=prompt, add_special_tokens=False, return_tensors="pt").to(handle.device)

        streamer = TextIteratorStreamer(processor.tokenizer, skip_prompt=True, skip_special_tokens=True)
        generation_kwargs = dict(
            **inputs,
            max_new_tokens=self.settings.max_new_tokens,
            do_sample=self.settings.do_sample,
            repetition_penalty=self.settings.repetition_penalty,
            streamer=streamer,
        )

        result: Dict[str, Any] = {}

        def _generate() -> None:
            try:
                with torch.inference_mode():
                    result["output_ids"] = model.generate(**generation_kwargs)
            except Exception as exc:  # noqa: BLE001 - re-raised on the caller thread below
                result["error"] = exc
                streamer.end()

        thread = Thread(target=_generate, name="vlm-generate", daemon=True)
        thread.start()
        for fragment in streamer:
            on_text(fragment)
        thread.join()

        if "error" in result:
            raise InferenceError(f"Generation failed: {result['error']}") from result["error"]

        prompt_length = inputs["input_ids"].shape[-1]
        decoded = processor.batch_decode(result["output_ids"][:, prompt_length:], skip_special_tokens=True)
        return decoded[0].strip()
