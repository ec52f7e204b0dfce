"""Constants used in the project."""

from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    QUERY_ERROR = 2


class CacheGenerations(Enum):
    """Schema generation per cached index operation.

    Bumping a value invalidates all prior persisted entries for that
    operation without touching the others.
    """

    CANDIDATE_RELEASES = 10
    RELEASE_MANIFEST = 11


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    METACPAN_URL = "https://fastapi.metacpan.org/v1"
    ENV_METACPAN_URL = "DIST_SURVEYOR_METACPAN_URL"
    # don't make too large, hurts the server
    METACPAN_PAGE_SIZE = 999
    PERL_MODULE_MIME = "text/x-script.perl-module"
    USER_AGENT = "dist-surveyor"

    LOG_FORMAT = "[%(levelname)s] %(message)s"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    HTTP_RETRY_MAX = 3
    HTTP_RETRY_BASE_DELAY_SEC = 0.3

    CACHE_FILE = "dist_surveyor_cache.db"
    DEFAULT_OUTPUT_FIELDS = "url"
    DEFAULT_WORKERS = 1

    # partial credit for a module whose version matches but whose file size differs
    SIZE_MISMATCH_WEIGHT = 0.1

    # "releases" on the index that are not installable distributions
    NON_DIST_RELEASE_PATTERN = r"^(perl|ponie|parrot|kurila|SiePerl-5\.6\.1-)"
    # files in a release that are not installed
    NON_INSTALLED_PATH_PATTERN = r"^(?:t|xt|tests?|inc|samples?|ex|examples?|bak)\b"

    PERLLOCAL_FILE = "perllocal.pod"
    MODULE_FILE_SUFFIX = ".pm"

    # interpreter asked for Module::CoreList data when --perlver is given
    PERL_COMMAND = "perl"
    CORELIST_TIMEOUT = 60

    # Distributions whose name doesn't match their principal module name,
    # yet whose principal module version always matches the distribution.
    # Used for perllocal.pod lookups.
    DISTRO_KEY_MODULE_NAMES = {
        "PathTools": "File::Spec",
        "Template-Toolkit": "Template",
        "TermReadKey": "Term::ReadKey",
        "libwww-perl": "LWP",
    }
