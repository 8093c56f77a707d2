"""
Loads the language model and debugger config files the debugger asks for.

The language model directory holds one file per locale: `<locale>.json` for
plain models and `<locale>.py` for models built in code (the module must
define LANGUAGE_MODEL). The snapshot is rebuilt on every request.
"""
import importlib.util
import json
import logging
import os
import re
from typing import Any, Optional

from errors import LanguageModelError

MODEL_FILE_PATTERN = re.compile(r"^(?P<locale>.+)(?P<suffix>\.json|\.py)$")
MODEL_ATTRIBUTE = "LANGUAGE_MODEL"


def _resolve(path: str) -> str:
    return path if os.path.isabs(path) else os.path.join(os.getcwd(), path)


def _load_json(file_path: str) -> Any:
    with open(file_path, "r", encoding="utf-8") as f:
        return json.load(f)


def _load_module_model(locale: str, file_path: str) -> Any:
    spec = importlib.util.spec_from_file_location(f"language_model_{locale}", file_path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot load module from '{file_path}'.")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    if not hasattr(module, MODEL_ATTRIBUTE):
        raise AttributeError(f"'{file_path}' does not define {MODEL_ATTRIBUTE}.")
    return getattr(module, MODEL_ATTRIBUTE)


def load_language_model(directory: str) -> dict[str, Any]:
    """
    Builds a locale -> model mapping from the files in `directory`.

    A file that can't be read or parsed is logged and its locale is left out.
    Files that don't look like model files are ignored.

    Args:
        directory: The models directory, relative to the working directory.

    Returns:
        The language models, keyed by locale.

    Raises:
        LanguageModelError: If the directory can't be listed.
    """
    models_path = _resolve(directory)
    try:
        files = sorted(os.listdir(models_path))
    except OSError as e:
        raise LanguageModelError(f"Couldn't find models-directory at {models_path}") from e

    language_model: dict[str, Any] = {}
    for file_name in files:
        match = MODEL_FILE_PATTERN.match(file_name)
        if not match:
            continue
        locale = match.group("locale")
        file_path = os.path.join(models_path, file_name)
        if match.group("suffix") == ".json":
            try:
                language_model[locale] = _load_json(file_path)
            except (OSError, ValueError) as e:
                logging.warning(f"Skipping language model '{file_name}': {e}")
        else:
            try:
                language_model[locale] = _load_module_model(locale, file_path)
            except Exception as e:
                logging.warning(f"Skipping language model '{file_name}': {e}")
    return language_model


def load_debugger_config(path: str) -> Optional[Any]:
    """
    Reads the debugger.json file.

    Returns:
        The parsed content, or None if the file is absent or malformed.
    """
    config_path = _resolve(path)
    if not os.path.isfile(config_path):
        logging.debug(f"No debugger config at {config_path}.")
        return None
    try:
        return _load_json(config_path)
    except (OSError, ValueError) as e:
        logging.warning(f"Could not read debugger config at {config_path}: {e}")
        return None
