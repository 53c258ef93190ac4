"""
new-csr: generate an RSA private key and a matching PKCS#10 certificate request.

Usage:
  new-csr --cn=example.com key.pem req.csr
  new-csr -b 2048 --cn=example.com --alt-dns=www.example.com key.pem req.csr
  new-csr -vv --hash=sha384 --organization="Example Inc" --cn=example.com key.pem req.csr
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

import structlog
from pydantic import ValidationError

from config import Settings
from pki.crypto import csr_to_pem, generate_rsa_key, private_key_to_pem
from pki.errors import CsrError
from pki.options import CsrOptions
from pki.request import HASH_ALGORITHMS, create_csr, describe_csr
from storage.filesystem import write_outputs

log = structlog.get_logger("new-csr")

USAGE = (
    "%(prog)s [options] [(-v | --verbose)...] [--alt-dns=<alt>...] "
    "--cn=<cn> <out_key> <out_csr>"
)


# ── Logging setup ─────────────────────────────────────────────────────────────


def configure_logging(verbose: int) -> None:
    """0 → WARNING, 1 → INFO, 2+ → DEBUG; everything goes to stderr."""
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose >= 2:
        level = logging.DEBUG

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
        force=True,
    )


# ── CLI ───────────────────────────────────────────────────────────────────────


def build_parser(defaults: Optional[Settings] = None) -> argparse.ArgumentParser:
    d = defaults or Settings.model_construct()
    parser = argparse.ArgumentParser(
        prog="new-csr",
        usage=USAGE,
        description="Generate an RSA private key and a certificate signing request.",
        # -h is --hash here, so help is long-form only
        add_help=False,
    )
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="Turn up the verbosity")
    parser.add_argument("-d", "--days", type=int, default=d.EXPIRE_DAYS, metavar="<expire>",
                        help="Days until certificate expires; not encoded in the request "
                             f"(default: {d.EXPIRE_DAYS})")
    parser.add_argument("-b", "--bits", type=int, default=d.RSA_BITS, metavar="<rsa_bits>",
                        help=f"Number of bits in new RSA key (default: {d.RSA_BITS})")
    parser.add_argument("-h", "--hash", default=d.HASH, metavar="<hash_algorithm>",
                        type=str.lower, choices=sorted(HASH_ALGORITHMS),
                        help=f"Signature hash: {', '.join(sorted(HASH_ALGORITHMS))} "
                             f"(default: {d.HASH})")
    parser.add_argument("--country", default=d.COUNTRY, metavar="<country>",
                        help=f"Country (default: {d.COUNTRY})")
    parser.add_argument("--state", default=d.STATE, metavar="<state>",
                        help=f"State (default: {d.STATE})")
    parser.add_argument("--locality", default=d.LOCALITY, metavar="<locality>",
                        help=f"Locality (default: {d.LOCALITY})")
    parser.add_argument("--organization", default=d.ORGANIZATION, metavar="<organization>",
                        help=f"Organization (default: {d.ORGANIZATION})")
    parser.add_argument("--section", default=d.SECTION, metavar="<section>",
                        help=f"Section (default: {d.SECTION})")
    parser.add_argument("--cn", required=True, metavar="<cn>",
                        help="Common Name (usually a domain name)")
    parser.add_argument("--email", default=d.EMAIL, metavar="<email>",
                        help=f"Email, not placed in the subject (default: {d.EMAIL})")
    parser.add_argument("--alt-dns", action="append", default=None, metavar="<alt>",
                        help="Alt DNS name (can be specified multiple times)")
    parser.add_argument("--help", action="help", help="Show this message")
    parser.add_argument("out_key", metavar="<out_key>", help="Private key output path")
    parser.add_argument("out_csr", metavar="<out_csr>", help="Certificate request output path")
    return parser


def _describe(exc: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
    )


def load_defaults() -> Settings:
    """Read Settings; a bad NEW_CSR_* value or .env entry is a usage error."""
    try:
        return Settings()
    except ValidationError as exc:
        # Built-in defaults only, so the usage text can still be rendered
        parser = build_parser(Settings.model_construct())
        parser.error(f"invalid NEW_CSR_* setting: {_describe(exc)}")
        raise  # parser.error() exits; keeps type checkers happy


def parse_options(argv: Optional[Sequence[str]] = None,
                  defaults: Optional[Settings] = None) -> CsrOptions:
    """Parse *argv* into CsrOptions; usage errors exit with status 2."""
    d = defaults or load_defaults()
    parser = build_parser(d)
    args = parser.parse_args(argv)

    if Path(args.out_key).resolve() == Path(args.out_csr).resolve():
        parser.error(f"<out_key> and <out_csr> must be different files: {args.out_key}")

    alt_dns = args.alt_dns if args.alt_dns is not None else d.ALT_DNS
    try:
        return CsrOptions(
            verbose=args.verbose,
            expire_days=args.days,
            rsa_bits=args.bits,
            hash_algorithm=args.hash,
            country=args.country,
            state=args.state,
            locality=args.locality,
            organization=args.organization,
            section=args.section,
            cn=args.cn,
            email=args.email,
            alt_dns=tuple(alt_dns),
            out_key=args.out_key,
            out_csr=args.out_csr,
        )
    except ValidationError as exc:
        parser.error(_describe(exc))
        raise  # parser.error() exits; keeps type checkers happy


# ── Runner ────────────────────────────────────────────────────────────────────


def run(options: CsrOptions) -> int:
    """Generate key, build request, write both files. Returns the exit status."""
    if options.verbose > 2:
        log.debug("options", **options.model_dump())

    try:
        key = generate_rsa_key(options.rsa_bits)
        csr_der = create_csr(key, options)
        write_outputs(
            options.out_key, private_key_to_pem(key),
            options.out_csr, csr_to_pem(csr_der),
        )
    except CsrError as exc:
        log.error(f"Fatal: {exc}")
        return 1

    summary = describe_csr(csr_der)
    log.info(
        "Certificate request ready",
        cn=summary["common_name"],
        san=summary["dns_names"],
        bits=summary["key_size"],
        hash=summary["signature_hash"],
    )
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    options = parse_options(argv)
    configure_logging(options.verbose)
    return run(options)


if __name__ == "__main__":
    sys.exit(main())
