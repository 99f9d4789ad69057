from __future__ import annotations

import base64

from cryptography.fernet import Fernet


def main() -> None:
    fernet_key = Fernet.generate_key().decode("utf-8")
    key_len = len(base64.urlsafe_b64decode(fernet_key.encode("utf-8")))
    print(f"HISTORY_ENCRYPTION_KEY={fernet_key}  # decoded_length={key_len}")


if __name__ == "__main__":
    main()
