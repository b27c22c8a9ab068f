# pathsift/config/loader.py
"""
Handles loading, merging, and saving of filter configurations from/to TOML files.
"""
import toml
from pathlib import Path
from typing import Any, Dict, Optional
import structlog

from pathsift.exceptions import ConfigError

from .settings import FilterConfig, OPTION_KEY_TO_ATTR

log = structlog.get_logger(__name__)

PROJECT_CONFIG_FILENAMES = [".pathsift.toml", "pathsift.toml", "pyproject.toml"]
USER_CONFIG_DIR = Path.home() / ".config" / "pathsift"
USER_CONFIG_FILE = USER_CONFIG_DIR / "config.toml"

# toml keys (both spellings) -> FilterConfig attribute.
CONFIG_KEY_TO_FILTERCONFIG_ATTR_MAP: Dict[str, str] = dict(OPTION_KEY_TO_ATTR)
CONFIG_KEY_TO_FILTERCONFIG_ATTR_MAP.update({attr: attr for attr in OPTION_KEY_TO_ATTR.values()})

def _load_toml_file_data(file_path: Path) -> Dict[str, Any]:
    if not file_path.is_file():
        return {}
    log.debug("loading_toml_config_file", path=str(file_path))
    try:
        data = toml.load(file_path)
    except (toml.TomlDecodeError, OSError) as e:
        log.error("config_file_load_error", path=str(file_path), error=str(e))
        return {}
    if file_path.name == "pyproject.toml":
        return data.get("tool", {}).get("pathsift", {})
    return data

def load_and_merge_configs(search_dir: Optional[Path] = None, user_config_file: Optional[Path] = None) -> Dict[str, Any]:
    # user-global settings first, then the first project-local file found in search_dir.
    search_dir = search_dir or Path.cwd()
    user_config_file = user_config_file or USER_CONFIG_FILE
    merged: Dict[str, Any] = {}

    if user_config_file.is_file():
        log.info("loading_user_global_config", path=str(user_config_file))
        merged.update(_load_toml_file_data(user_config_file))

    for filename in PROJECT_CONFIG_FILENAMES:
        candidate = search_dir / filename
        if not candidate.is_file():
            continue
        project_settings = _load_toml_file_data(candidate)
        if not project_settings:
            continue
        log.info("loading_project_local_config", path=str(candidate))
        user_profiles = merged.get("profiles", {})
        project_profiles = project_settings.pop("profiles", {})
        if isinstance(user_profiles, dict) and isinstance(project_profiles, dict):
            user_profiles.update(project_profiles)
            merged["profiles"] = user_profiles
        elif isinstance(project_profiles, dict):
            merged["profiles"] = project_profiles
        merged.update(project_settings)
        break

    if not merged:
        log.debug("no_configuration_files_loaded")
    return merged

def extract_filter_options(raw: Dict[str, Any], profile_name: Optional[str] = None) -> Dict[str, Any]:
    """
    Picks the recognised filter options out of merged TOML data.

    Top-level keys apply first; the named profile (if any) overrides them.
    Values are returned keyed by FilterConfig attribute name.
    """
    options: Dict[str, Any] = {}
    for key, attr in CONFIG_KEY_TO_FILTERCONFIG_ATTR_MAP.items():
        if key in raw:
            options[attr] = raw[key]

    if profile_name:
        profile = raw.get("profiles", {}).get(profile_name)
        if profile is None:
            raise ConfigError(f"profile '{profile_name}' not found in configuration files.")
        if not isinstance(profile, dict):
            raise ConfigError(f"profile '{profile_name}' must be a table.")
        log.info("applying_profile_settings", profile=profile_name)
        for key, attr in CONFIG_KEY_TO_FILTERCONFIG_ATTR_MAP.items():
            if key in profile:
                options[attr] = profile[key]
    return options

def save_config_to_profile(config_to_save: FilterConfig, profile_name: str, target_dir: Optional[Path] = None) -> bool:
    # writes the non-default options of a config to the project's .pathsift.toml.
    target_dir = target_dir or Path.cwd()
    target_toml_path = target_dir / ".pathsift.toml"
    if not target_toml_path.exists():
        alt_path = target_dir / "pathsift.toml"
        if alt_path.exists():
            target_toml_path = alt_path
    log.info("attempting_to_save_profile", profile=profile_name, path=str(target_toml_path))

    defaults = FilterConfig().to_options()
    profile_data = {k: v for k, v in config_to_save.to_options().items() if v != defaults[k]}
    if not profile_data:
        log.info("no_options_to_save_for_profile", profile=profile_name)
        return False

    existing_data: Dict[str, Any] = {}
    if target_toml_path.exists():
        try:
            existing_data = toml.load(target_toml_path)
        except toml.TomlDecodeError as e:
            raise ConfigError(f"Could not read existing TOML {target_toml_path} to save profile: {e}")

    if profile_name.upper() == "DEFAULT":
        profiles_bak = existing_data.pop("profiles", None)
        existing_data.update(profile_data)
        if profiles_bak is not None:
            existing_data["profiles"] = profiles_bak
    else:
        existing_data.setdefault("profiles", {})[profile_name] = profile_data

    try:
        with target_toml_path.open("w", encoding="utf-8") as f:
            toml.dump(existing_data, f)
    except OSError as e:
        raise ConfigError(f"Error writing profile '{profile_name}' to {target_toml_path}: {e}")
    log.info("profile_saved_successfully", profile=profile_name, path=str(target_toml_path))
    return True
