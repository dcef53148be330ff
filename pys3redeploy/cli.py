"""CLI interface for pys3redeploy."""

import logging
from typing import Any, Optional

import click

from .api import CloudFrontClient, S3Client, create_session
from .config import build_sync_params, parse_invalidation_paths
from .exceptions import ConfigError, S3RedeployError, SyncStageError
from .output import OutputFormatter
from .sync import ManifestStore, SyncEngine
from .sync import invalidate as create_invalidation

logger = logging.getLogger(__name__)


def _report_failure(out: OutputFormatter, error: S3RedeployError) -> None:
    """Print the failed stage and its underlying cause."""
    if isinstance(error, SyncStageError):
        out.error(error.message)
        if error.cause is not None:
            out.error(f"Caused by: {error.cause}")
    else:
        out.error(str(error))


@click.group()
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output results in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(package_name="pys3redeploy")
@click.pass_context
def main(ctx: Any, quiet: bool, json: bool, verbose: bool) -> None:
    """pys3redeploy - Deploy a local directory to S3, uploading only changes."""
    ctx.ensure_object(dict)
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet or json)
    ctx.obj["verbose"] = verbose

    # Configure logging based on verbose flag
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("pys3redeploy").setLevel(logging.DEBUG)
        # boto is very chatty at debug level
        logging.getLogger("botocore").setLevel(logging.INFO)
    else:
        logging.basicConfig(level=logging.WARNING)


def _credential_options(func: Any) -> Any:
    """Attach the AWS profile and region options to a command."""
    func = click.option("--region", envvar="AWS_REGION", help="AWS region")(func)
    func = click.option(
        "--profile", envvar="AWS_PROFILE", help="AWS shared credentials profile"
    )(func)
    return func


def _aws_options(func: Any) -> Any:
    """Attach the shared AWS connection options to an S3 command."""
    func = click.option(
        "--endpoint-url",
        envvar="AWS_ENDPOINT_URL",
        help="Custom S3 endpoint (S3-compatible services)",
    )(func)
    return _credential_options(func)


@main.command()
@click.option("--bucket", "-b", required=True, help="Target S3 bucket name")
@click.option("--prefix", "-p", default="", help="Key prefix inside the bucket")
@click.option(
    "--cwd",
    "base_path",
    type=click.Path(exists=True, file_okay=False),
    default=".",
    help="Local directory to deploy (default: current directory)",
)
@click.option(
    "--pattern", default=None, help="Glob pattern of files to deploy (default: ./**)"
)
@click.option(
    "--concurrency",
    "-c",
    default=None,
    help="Number of parallel file operations (default: 5)",
)
@click.option(
    "--gzip",
    "gzip_option",
    is_flag=False,
    flag_value="true",
    default=None,
    help="Gzip files before upload; optionally a ;-separated list of extensions",
)
@click.option("--cache", default=None, help="Cache-Control max-age in seconds")
@click.option("--immutable", is_flag=True, help="Add 'immutable' to Cache-Control")
@click.option(
    "--file-name",
    "manifest_key",
    default=None,
    help="Manifest object name (default: _s3-rd.<bucket>.json)",
)
@click.option(
    "--acl",
    default="public-read",
    show_default=True,
    help="Canned ACL for uploaded objects ('none' to omit)",
)
@click.option("--no-rm", is_flag=True, help="Do not remove remote-only objects")
@click.option("--no-map", is_flag=True, help="Do not store the manifest")
@click.option(
    "--ignore-map", is_flag=True, help="List the bucket instead of reading the manifest"
)
@click.option(
    "--include-map",
    is_flag=True,
    help="Treat the manifest object as a regular file when listing",
)
@click.option(
    "--cf-dist-id", default=None, help="CloudFront distribution to invalidate"
)
@click.option(
    "--cf-inv-paths",
    default=None,
    help="Paths to invalidate, ;-separated (default: /*)",
)
@click.option("--dry-run", is_flag=True, help="Show what would be done")
@_aws_options
@click.pass_context
def sync(
    ctx: Any,
    bucket: str,
    prefix: str,
    base_path: str,
    pattern: Optional[str],
    concurrency: Optional[str],
    gzip_option: Optional[str],
    cache: Optional[str],
    immutable: bool,
    manifest_key: Optional[str],
    acl: str,
    no_rm: bool,
    no_map: bool,
    ignore_map: bool,
    include_map: bool,
    cf_dist_id: Optional[str],
    cf_inv_paths: Optional[str],
    dry_run: bool,
    profile: Optional[str],
    region: Optional[str],
    endpoint_url: Optional[str],
) -> None:
    """Sync a local directory to an S3 bucket.

    Only new and modified files are uploaded; objects that no longer exist
    locally are removed. A manifest of content hashes is stored in the bucket
    so later runs do not need to list every object.

    Examples:
        pys3redeploy sync -b my-site --cwd ./build
        pys3redeploy sync -b my-site --cwd ./build --gzip "html;css;js"
        pys3redeploy sync -b my-site --cache 3600 --immutable --cf-dist-id E123
        pys3redeploy sync -b my-site --cwd ./build --dry-run
    """
    out: OutputFormatter = ctx.obj["out"]

    try:
        params = build_sync_params(
            bucket,
            prefix=prefix,
            pattern=pattern,
            base_path=base_path,
            concurrency=concurrency,
            compress=gzip_option,
            cache=cache,
            manifest_key=manifest_key,
            invalidation_paths=cf_inv_paths,
            immutable=immutable,
            acl=None if acl.lower() == "none" else acl,
            skip_delete=no_rm,
            skip_manifest=no_map,
            ignore_manifest=ignore_map,
            include_manifest=include_map,
            distribution_id=cf_dist_id,
            region=region,
            profile=profile,
            endpoint_url=endpoint_url,
            dry_run=dry_run,
        )
    except ConfigError as e:
        out.error(str(e))
        ctx.exit(1)
        return  # Unreachable, but helps type checker

    if not out.quiet:
        out.info(f"Bucket: {params.bucket}")
        out.info(f"Local path: {params.base_path}")
        out.info(f"Pattern: {params.pattern}")
        out.info("")

    try:
        session = create_session(params.profile, params.region)
        client = S3Client(
            params.bucket, endpoint_url=params.endpoint_url, session=session
        )
        cdn_client = None
        if params.distribution_id:
            cdn_client = CloudFrontClient(session=session)
        engine = SyncEngine(client, out, cdn_client)
        stats = engine.run(params)
    except KeyboardInterrupt:
        out.error("Sync cancelled by user")
        ctx.exit(130)
        return
    except S3RedeployError as e:
        logger.debug("Sync failed", exc_info=True)
        _report_failure(out, e)
        ctx.exit(1)
        return

    if out.json_output:
        out.output_json(stats)


@main.command()
@click.argument("distribution_id")
@click.option(
    "--paths",
    default=None,
    help="Paths to invalidate, ;-separated (default: /*)",
)
@_credential_options
@click.pass_context
def invalidate(
    ctx: Any,
    distribution_id: str,
    paths: Optional[str],
    profile: Optional[str],
    region: Optional[str],
) -> None:
    """Create a CloudFront invalidation without syncing.

    DISTRIBUTION_ID: CloudFront distribution id
    """
    out: OutputFormatter = ctx.obj["out"]

    try:
        cdn_client = CloudFrontClient(session=create_session(profile, region))
        invalidation_id = create_invalidation(
            cdn_client, distribution_id, parse_invalidation_paths(paths)
        )
    except S3RedeployError as e:
        _report_failure(out, e)
        ctx.exit(1)
        return

    if out.json_output:
        out.output_json({"invalidation_id": invalidation_id})
    else:
        out.success(f"CloudFront invalidation created: {invalidation_id}")


@main.command()
@click.option("--bucket", "-b", required=True, help="S3 bucket name")
@click.option("--prefix", "-p", default="", help="Key prefix inside the bucket")
@click.option(
    "--file-name",
    "manifest_key",
    default=None,
    help="Manifest object name (default: _s3-rd.<bucket>.json)",
)
@_aws_options
@click.pass_context
def manifest(
    ctx: Any,
    bucket: str,
    prefix: str,
    manifest_key: Optional[str],
    profile: Optional[str],
    region: Optional[str],
    endpoint_url: Optional[str],
) -> None:
    """Show the manifest stored in a bucket."""
    out: OutputFormatter = ctx.obj["out"]

    try:
        params = build_sync_params(
            bucket, prefix=prefix, manifest_key=manifest_key, region=region
        )
        client = S3Client(
            params.bucket,
            region=region,
            profile=profile,
            endpoint_url=endpoint_url,
        )
        stored = ManifestStore(client, params).get_manifest()
    except S3RedeployError as e:
        _report_failure(out, e)
        ctx.exit(1)
        return

    if stored is None:
        out.error(f"No manifest found at s3://{bucket}/{params.manifest_object_key}")
        ctx.exit(1)
        return

    if out.json_output:
        out.output_json(stored.to_dict())
        return

    out.info(f"Manifest: s3://{bucket}/{params.manifest_object_key}")
    if stored.policy is not None:
        out.info(f"Policy: {stored.policy.to_dict()}")
    out.info(f"Files: {len(stored.hashes)}")
    for path, content_hash in sorted(stored.hashes.items()):
        out.print(f"  {content_hash}  {path}")


if __name__ == "__main__":
    main()
