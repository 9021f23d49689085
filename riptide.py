#!/usr/bin/env python3
"""Riptide - RDP Credential Auditor.

For authorized security testing only.
"""

import sys
from pathlib import Path

# Allow running directly with `python riptide.py` without installing
if __name__ == "__main__":
    sys.path.insert(0, str(Path(__file__).parent))

import click
from rich.console import Console

from core.engine import AttemptEngine, ConnectPolicy
from core.errors import EmptyCredentialSetError, RiptideError
from core.input_parser import credential_set_for, parse_config
from core.output import print_banner, print_dry_run, print_fatal, print_run_header, print_summary
from core.theme import RIPTIDE_THEME
from core.transport import establish
from modules.rdp import RDPAuthenticator

console = Console(theme=RIPTIDE_THEME)


@click.command()
@click.option("-t", "--target", "target_str", required=True, help="Target IP:PORT pair (port defaults to 3389)")
@click.option("-x", "--proxy", "proxy_str", help="SOCKS4 proxy IP:PORT pair")
@click.option("-d", "--logon-domain", default="domain", show_default=True, help="Windows logon domain")
@click.option("-u", "--username", help="A specific username to try (if not used, specify --username-list)")
@click.option("-U", "--username-list", help="Username wordlist file (if not used, specify --username)")
@click.option("-P", "--password-list", help="Password wordlist file")
@click.option("-H", "--hash-list", help="NT hash list file (hex, one per line)")
@click.option("--timeout", default=5.0, show_default=True, help="Connection timeout (seconds)")
@click.option("--delay", default=0.0, show_default=True, help="Delay between attempts (seconds)")
@click.option(
    "--on-connect-error",
    type=click.Choice([p.value for p in ConnectPolicy]),
    default=ConnectPolicy.ABORT.value,
    show_default=True,
    help="Abort the run or skip the pair when the target/proxy cannot be reached",
)
@click.option("--mask-creds", is_flag=True, help="Mask secrets in all output (for screenshots/screen shares)")
@click.option("--debug", is_flag=True, help="Show raw unformatted output for every attempt")
@click.option("--dry-run", is_flag=True, help="Show what would be tried without sending any traffic")
def main(
    target_str,
    proxy_str,
    logon_domain,
    username,
    username_list,
    password_list,
    hash_list,
    timeout,
    delay,
    on_connect_error,
    mask_creds,
    debug,
    dry_run,
):
    """Riptide - RDP Credential Auditor.

    Try every username/secret pair against one RDP endpoint over
    CredSSP (NLA), stopping at the first valid credential.
    For authorized security testing only.
    """
    print_banner()

    try:
        config = parse_config(
            target=target_str,
            proxy=proxy_str,
            logon_domain=logon_domain,
            username=username,
            username_list=username_list,
            password_list=password_list,
            hash_list=hash_list,
        )
        credentials = credential_set_for(config)

        print_run_header(config, len(credentials))
        if not credentials:
            raise EmptyCredentialSetError("critical: no entries in credential list")

        if dry_run:
            print_dry_run(config, credentials, mask_creds=mask_creds)
            return

        engine = AttemptEngine(
            RDPAuthenticator(),
            connector=establish,
            timeout=timeout,
            delay=delay,
            connect_policy=ConnectPolicy(on_connect_error),
            debug=debug,
            mask_creds=mask_creds,
        )
        report = engine.run(config, credentials)
    except RiptideError as e:
        print_fatal(e)
        sys.exit(e.exit_code)
    except KeyboardInterrupt:
        console.print("\n[warn]Interrupted by user.[/warn]")
        sys.exit(130)

    print_summary(report, mask_creds=mask_creds)


if __name__ == "__main__":
    main()
