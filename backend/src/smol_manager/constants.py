MOD_INFO_FILE = "mod_info.json"
VERSION_CHECKER_FILE_ENDING = ".version"
VERSION_CHECKER_CSV_PATH = "data/config/version/version_files.csv"
ENABLED_MODS_FILE = "enabled_mods.json"

ARCHIVE_EXTENSIONS = {".zip", ".7z", ".rar"}

# Search depth used when locating mod_info.json inside a folder.
DEFAULT_MOD_INFO_SEARCH_DEPTH = 6
