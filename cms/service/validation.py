import re

from cms.errors import BadRequestError

CODE_PATTERN = re.compile(r"^[a-z0-9]+([a-z0-9_-]*[a-z0-9])?$")
SLUG_PATTERN = re.compile(r"^[a-z0-9]+([a-z0-9-]*[a-z0-9])?$")

POST_STATUSES = ("DRAFT", "REVIEW", "PUBLISHED", "ARCHIVED", "DELETED")
POST_VISIBILITIES = ("public", "private", "unlisted", "members")
POST_FORMATS = ("markdown", "html", "mdx", "plaintext")


def validate_code(code: str) -> None:
    if not CODE_PATTERN.fullmatch(code):
        raise BadRequestError("Invalid code format", details={"code": code})


def validate_slug(slug: str) -> None:
    if not SLUG_PATTERN.fullmatch(slug):
        raise BadRequestError("Invalid slug format", details={"slug": slug})


def validate_choice(field: str, value: str, choices: tuple[str, ...]) -> None:
    if value not in choices:
        raise BadRequestError(
            f"Invalid {field}", details={field: value, "allowed": list(choices)}
        )
