"""
Password validation utility
Checks a cleartext password before it is hashed
"""


class PasswordValidator:
    """Password length policy"""

    MIN_LENGTH = 6
    MAX_LENGTH = 128

    @classmethod
    def validate(cls, password):
        """
        Validate password length

        Args:
            password (str): The password to validate

        Returns:
            tuple: (is_valid, error_message)
                is_valid (bool): True if password meets all requirements
                error_message (str): Error message if validation fails, empty string if valid
        """
        if not password or not isinstance(password, str):
            return False, "Password is required"

        if len(password) < cls.MIN_LENGTH:
            return False, f"Password must be at least {cls.MIN_LENGTH} characters"

        if len(password) > cls.MAX_LENGTH:
            return False, f"Password must be less than {cls.MAX_LENGTH} characters"

        return True, ""
