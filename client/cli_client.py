#!/usr/bin/env python3
"""
Interactive key tool for the ECC toolkit

Provides a command-line shell for:
- Generating encryption and signing key pairs
- Encrypting to and decrypting with encoded keys
- Signing and verifying text

Secret keys are read with a hidden prompt rather than from the command line.
"""

import argparse
import logging
import sys
from typing import Callable, Optional

from prompt_toolkit import PromptSession, prompt

from ecckit import CURVES, CryptoError, Ecc, EccSettings, KeyKind


HELP_TEXT = """Commands:
  /generate enc|sig [curve] - Generate a key pair
  /encrypt <enc key> <text> - Encrypt text to a public key
  /decrypt <envelope>       - Decrypt an envelope (asks for the dec key)
  /sign <text>              - Sign text (asks for the sig key)
  /verify <ver key> <signature> <text> - Verify a signature
  /curves - List supported curves
  /help - Show this help
  /quit - Quit application"""

KINDS = {
    'enc': KeyKind.ENC_DEC,
    'sig': KeyKind.SIG_VER,
}


def _ask_secret(label: str) -> str:
    return prompt(label, is_password=True).strip()


class KeyToolClient:
    """
    Command interpreter around an Ecc instance.
    """

    def __init__(self, ecc: Optional[Ecc] = None, ask_secret: Callable[[str], str] = _ask_secret):
        """
        Initialize key tool.

        Args:
            ecc: Toolkit instance, built from ECCKIT_* settings if omitted
            ask_secret: Callable prompting for a secret key
        """
        self.ecc = ecc or Ecc(EccSettings.from_env())
        self.ask_secret = ask_secret
        self.running = False

    def handle_command(self, command: str) -> Optional[str]:
        """
        Run one slash command.

        Returns:
            Text to show the user, or None
        """
        parts = command.split(maxsplit=1)
        cmd = parts[0].lower()
        rest = parts[1] if len(parts) == 2 else ""

        try:
            if cmd == "/generate":
                return self._generate(rest.split())
            elif cmd == "/encrypt":
                args = rest.split(maxsplit=1)
                if len(args) != 2:
                    return "Usage: /encrypt <enc key> <text>"
                return self.ecc.encrypt(args[0], args[1])
            elif cmd == "/decrypt":
                if not rest:
                    return "Usage: /decrypt <envelope>"
                return self.ecc.decrypt(self.ask_secret("dec key: "), rest)
            elif cmd == "/sign":
                if not rest:
                    return "Usage: /sign <text>"
                return self.ecc.sign(self.ask_secret("sig key: "), rest)
            elif cmd == "/verify":
                args = rest.split(maxsplit=2)
                if len(args) != 3:
                    return "Usage: /verify <ver key> <signature> <text>"
                return "valid" if self.ecc.verify(args[0], args[1], args[2]) else "INVALID"
            elif cmd == "/curves":
                return "\n".join(f"  {c.curve_id} - {c.name}" for c in CURVES.values())
            elif cmd == "/help":
                return HELP_TEXT
            elif cmd == "/quit":
                self.running = False
                return None
            else:
                return "Unknown command. Type /help for help."
        except CryptoError as e:
            return f"Error: {e}"

    def _generate(self, args) -> str:
        if not args or args[0] not in KINDS:
            return "Usage: /generate enc|sig [curve]"
        curve_id = args[1] if len(args) > 1 else None
        keys = self.ecc.generate(KINDS[args[0]], curve_id)
        return "\n".join(f"{name}: {value}" for name, value in keys.items())

    def run_interactive(self):
        """Run interactive session"""
        self.running = True
        session = PromptSession()

        print()
        print(HELP_TEXT)
        print()

        while self.running:
            try:
                user_input = session.prompt("ecc> ").strip()
            except KeyboardInterrupt:
                break
            except EOFError:
                break

            if not user_input:
                continue

            if not user_input.startswith("/"):
                print("Commands start with '/'. Type /help for help.")
                continue

            output = self.handle_command(user_input)
            if output:
                print(output)


def main(argv=None):
    """Main entry point"""
    parser = argparse.ArgumentParser(description="ECC key tool")
    parser.add_argument("--verbose", action="store_true", help="enable debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    print("=" * 50)
    print("ECC Key Tool")
    print("=" * 50)

    KeyToolClient().run_interactive()

    print("\nGoodbye!")


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        print("\nInterrupted")
        sys.exit(0)
