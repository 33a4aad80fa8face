"""Builders for the short diagnostic scripts run against the runtime."""

from __future__ import annotations

from .generation_script import AVAILABLE_MARKER, NOT_AVAILABLE_MARKER, build_runtime_prelude
from .tts_models import Device, TTSModel

NOT_INSTALLED_MARKER = "NOT_INSTALLED"

_CHATTERBOX_CHECK_SCRIPT = """try:
    import chatterbox
    version = getattr(chatterbox, "__version__", "installed")
    print(f"OK:{version}")
except ImportError:
    print("NOT_INSTALLED")
except Exception as exc:
    print(f"ERROR:{exc}")
"""

_ACCELERATOR_PROBE_SCRIPT = """import json

try:
    import torch
except ImportError:
    print(json.dumps({"installed": False}))
else:
    report = {
        "installed": True,
        "version": torch.__version__,
        "cuda": bool(torch.cuda.is_available()),
        "cuda_version": torch.version.cuda,
        "device_name": None,
        "mps": False,
    }
    if report["cuda"]:
        report["device_name"] = torch.cuda.get_device_name(0)
    mps = getattr(torch.backends, "mps", None)
    if mps is not None and mps.is_available():
        report["mps"] = True
    print(json.dumps(report))
"""


def build_chatterbox_check_script() -> str:
    """Prints `OK:<version>`, `NOT_INSTALLED` or `ERROR:<reason>`."""
    return _CHATTERBOX_CHECK_SCRIPT


def build_accelerator_probe_script() -> str:
    """Prints one JSON line describing the torch install and its accelerators."""
    return _ACCELERATOR_PROBE_SCRIPT


def build_model_check_script(model: TTSModel) -> str:
    """Loads the model on CPU from the local cache and prints an availability marker."""
    body = f"""os.environ["HF_HUB_DISABLE_PROGRESS_BARS"] = "1"
os.environ["TRANSFORMERS_VERBOSITY"] = "error"

try:
    {model.python_import}
    {model.python_class}.from_pretrained(device=device)
    print({AVAILABLE_MARKER!r})
except Exception:
    print({NOT_AVAILABLE_MARKER!r})
"""
    return build_runtime_prelude(Device.CPU, force_cpu=True) + "\n" + body


def build_model_download_script(model: TTSModel) -> str:
    """Downloads the model weights into the HuggingFace cache; exits 1 on failure."""
    banner = f"Downloading {model.value} model..."
    repository = f"Model repository: resemble-ai/{model.value}"
    body = f"""import traceback

print({banner!r}, flush=True)
try:
    {model.python_import}

    print("Loading model from HuggingFace...", flush=True)
    {model.python_class}.from_pretrained(device=device)
    try:
        from huggingface_hub import constants

        cache_dir = constants.HUGGINGFACE_HUB_CACHE
    except Exception:
        cache_dir = os.path.join(os.path.expanduser("~"), ".cache", "huggingface", "hub")
    print("Model downloaded successfully!", flush=True)
    print(f"Model cache directory: {{cache_dir}}", flush=True)
    print({repository!r}, flush=True)
except ImportError as exc:
    print(f"ERROR: Missing import - {{exc}}", file=sys.stderr, flush=True)
    print(
        "ERROR: Install Chatterbox TTS with: pip install chatterbox-tts",
        file=sys.stderr,
        flush=True,
    )
    traceback.print_exc(file=sys.stderr)
    sys.exit(1)
except Exception as exc:
    print(
        f"ERROR: Failed to download model - {{type(exc).__name__}}: {{exc}}",
        file=sys.stderr,
        flush=True,
    )
    traceback.print_exc(file=sys.stderr)
    sys.exit(1)
"""
    return build_runtime_prelude(Device.CPU, force_cpu=True) + "\n" + body
