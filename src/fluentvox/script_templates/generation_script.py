"""Pure builders for the Python source executed by the runtime."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from .tts_models import Device, Language, TTSModel

AVAILABLE_MARKER = "AVAILABLE"
NOT_AVAILABLE_MARKER = "NOT_AVAILABLE"


@dataclass(frozen=True)
class GenerationParameters:  # pylint: disable=too-many-instance-attributes
    """Everything the generation script needs, already validated and clamped."""

    text: str
    output_path: Path
    model: TTSModel
    device: Device
    exaggeration: float
    temperature: float
    cfg_weight: float
    seed: int = 0
    trim_silence: bool = False
    audio_prompt_path: Path | None = None
    language: Language | None = None


def build_runtime_prelude(device: Device, *, force_cpu: bool = False) -> str:
    """Return the shared header that imports torch and selects the device.

    Every script that loads model weights starts with this block, so device
    selection and the CPU remapping of CUDA checkpoints live in one place.
    """
    lines = [
        "import json",
        "import os",
        "import sys",
        "import warnings",
        "",
        'warnings.filterwarnings("ignore", category=FutureWarning)',
        'warnings.filterwarnings("ignore", category=UserWarning)',
    ]
    if force_cpu:
        lines.append('os.environ["CUDA_VISIBLE_DEVICES"] = ""')
    lines.extend(
        [
            "",
            "import torch",
            "",
            f"_FORCE_CPU = {force_cpu!r}",
            "_original_torch_load = torch.load",
            "",
            "",
            "def _portable_torch_load(f, *args, **kwargs):",
            "    if not args and (_FORCE_CPU or not torch.cuda.is_available()):",
            '        kwargs["map_location"] = "cpu"',
            "    try:",
            "        return _original_torch_load(f, *args, **kwargs)",
            "    except Exception as exc:",
            "        message = str(exc)",
            '        if "weights_only" in message or "Unpickler" in message:',
            '            kwargs["weights_only"] = False',
            "            return _original_torch_load(f, *args, **kwargs)",
            '        if "cuda" in message.lower() and not args:',
            '            kwargs["map_location"] = "cpu"',
            "            return _original_torch_load(f, *args, **kwargs)",
            "        raise",
            "",
            "",
            "torch.load = _portable_torch_load",
            'if hasattr(torch, "serialization"):',
            "    torch.serialization.load = _portable_torch_load",
            "",
            "",
            "def _select_device(requested):",
            '    if requested != "auto":',
            "        return requested",
            "    if torch.cuda.is_available():",
            '        return "cuda"',
            '    mps = getattr(torch.backends, "mps", None)',
            "    if mps is not None and mps.is_available():",
            '        return "mps"',
            '    return "cpu"',
            "",
            "",
            f"device = _select_device({('cpu' if force_cpu else device.value)!r})",
        ]
    )
    return "\n".join(lines) + "\n"


def build_generation_script(parameters: GenerationParameters) -> str:
    """Build the script that synthesizes one utterance and prints its metadata line."""
    model = parameters.model
    output_path = str(parameters.output_path)
    generate_args = [
        f"exaggeration={float(parameters.exaggeration)!r}",
        f"temperature={float(parameters.temperature)!r}",
        f"cfg_weight={float(parameters.cfg_weight)!r}",
    ]
    if parameters.trim_silence:
        generate_args.append("vad_trim=True")
    if parameters.audio_prompt_path is not None:
        generate_args.append(f"audio_prompt_path={str(parameters.audio_prompt_path)!r}")
    if model.is_multilingual and parameters.language is not None:
        generate_args.append(f"language_id={parameters.language.value!r}")

    body = [
        "import torchaudio as ta",
        "",
        'print(f"Using device: {device}", file=sys.stderr, flush=True)',
    ]
    body.extend(_seed_lines(parameters.seed))
    body.extend(
        [
            model.python_import,
            "",
            'print("Loading model...", file=sys.stderr, flush=True)',
            f"model = {model.python_class}.from_pretrained(device=device)",
            "",
            'print("Generating audio...", file=sys.stderr, flush=True)',
            f"text = {parameters.text!r}",
            f"wav = model.generate(text, {', '.join(generate_args)})",
            "",
            f"output_path = {output_path!r}",
            "ta.save(output_path, wav, model.sr)",
            "duration = wav.shape[-1] / model.sr",
            "",
            "print(json.dumps({",
            '    "sample_rate": model.sr,',
            '    "duration": float(duration),',
            '    "output_path": output_path,',
            "}))",
            'print("Audio saved to:", output_path, file=sys.stderr, flush=True)',
        ]
    )
    return build_runtime_prelude(parameters.device) + "\n" + "\n".join(body) + "\n"


def _seed_lines(seed: int) -> list[str]:
    if seed == 0:
        return []
    return [
        "",
        "import random",
        "import numpy as np",
        f"torch.manual_seed({seed})",
        'if device == "cuda":',
        f"    torch.cuda.manual_seed({seed})",
        f"    torch.cuda.manual_seed_all({seed})",
        f"random.seed({seed})",
        f"np.random.seed({seed})",
        "",
    ]
