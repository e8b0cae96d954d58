import pytest

from warbler.validation import (
    validate_bio,
    validate_email,
    validate_password,
    validate_post_content,
    validate_username,
)


@pytest.mark.unit
class TestUsernameValidation:
    @pytest.mark.parametrize("username", ["bob", "Bob_1", "a" * 20, "user_name_99"])
    def test_valid_usernames(self, username: str):
        validate_username(username)

    @pytest.mark.parametrize("username", [None, "", 42])
    def test_missing_username(self, username):
        with pytest.raises(ValueError, match="Username is required."):
            validate_username(username)

    @pytest.mark.parametrize("username", ["ab", "a" * 21, "bob!", "bob smith", "bob\n"])
    def test_malformed_username(self, username: str):
        with pytest.raises(ValueError, match="Username must be 3-20 characters"):
            validate_username(username)


@pytest.mark.unit
class TestPasswordValidation:
    def test_valid_password(self):
        validate_password("Str0ng!pass")

    @pytest.mark.parametrize(
        "password, message",
        [
            (None, "Password is required."),
            ("", "Password is required."),
            ("Weak1", "Password must be at least 8 characters long."),
            ("weakpass1!", "Password must include at least one uppercase letter."),
            ("WEAKPASS1!", "Password must include at least one lowercase letter."),
            ("Weakpass!", "Password must include at least one number."),
            ("Weakpass1", "Password must include at least one symbol."),
        ],
    )
    def test_first_failing_rule_wins(self, password, message: str):
        with pytest.raises(ValueError) as exc_info:
            validate_password(password)
        assert str(exc_info.value) == message


@pytest.mark.unit
class TestEmailValidation:
    @pytest.mark.parametrize("email", ["a@b.co", "bob.smith@example.com"])
    def test_valid_emails(self, email: str):
        validate_email(email)

    @pytest.mark.parametrize("email", [None, "", "   "])
    def test_missing_email(self, email):
        with pytest.raises(ValueError, match="Email is required."):
            validate_email(email)

    @pytest.mark.parametrize("email", ["bob", "bob@example", "bob @example.com", "a@b@c.com"])
    def test_malformed_email(self, email: str):
        with pytest.raises(ValueError, match="Email format is invalid."):
            validate_email(email)


@pytest.mark.unit
class TestBioValidation:
    def test_empty_bio_is_allowed(self):
        validate_bio("")

    def test_bio_at_limit(self):
        validate_bio("x" * 200)

    def test_bio_over_limit(self):
        with pytest.raises(ValueError, match="Bio must be 200 characters or fewer."):
            validate_bio("x" * 201)

    def test_non_string_bio(self):
        with pytest.raises(ValueError, match="Bio must be a string."):
            validate_bio(None)


@pytest.mark.unit
class TestPostContentValidation:
    @pytest.mark.parametrize("content", ["a", "x" * 280])
    def test_length_bounds(self, content: str):
        validate_post_content(content)

    @pytest.mark.parametrize("content", ["", "x" * 281])
    def test_out_of_bounds(self, content: str):
        with pytest.raises(ValueError, match="between 1 and 280 characters"):
            validate_post_content(content)

    @pytest.mark.parametrize("content", [None, 5, ["hi"]])
    def test_non_string_content(self, content):
        with pytest.raises(ValueError, match="Post content is required."):
            validate_post_content(content)
