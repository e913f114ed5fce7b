from __future__ import annotations

import json
import re
from collections.abc import Iterable, Mapping
from types import MappingProxyType

from loguru import logger

from reposcope.errors import ReposcopeError
from reposcope.github import GitHubClient
from reposcope.models import TechStackFinding

PACKAGE_MANIFEST = "package.json"
REQUIREMENTS_MANIFEST = "requirements.txt"

_PACKAGE_SECTIONS = (
    "dependencies",
    "devDependencies",
    "peerDependencies",
    "optionalDependencies",
)

# Name ends at the first version specifier, extra, marker, URL or blank.
_REQUIREMENT_NAME_END = re.compile(r"[\s<>=!~;\[@,]")


def _table(entries: dict[str, tuple[str, ...]]) -> Mapping[str, tuple[str, ...]]:
    return MappingProxyType(dict(entries))


FRAMEWORKS = _table({
    "React": ("react", "react-dom", "react-scripts", "next", "gatsby", "remix", "@remix-run"),
    "Next.js": ("next", "@next"),
    "Express": ("express", "express-"),
    "Angular": ("@angular/core", "@angular/common", "@angular/platform-browser", "@angular/compiler"),
    "Vue": ("vue", "vue-router", "vuex", "nuxt", "@vue"),
    "Django": ("django", "djangorestframework", "django-cors-headers"),
    "Flask": ("flask", "flask-restful", "flask-sqlalchemy"),
    "Spring": ("spring-boot", "spring-core", "spring-web", "spring-data"),
    "Laravel": ("laravel", "@laravel"),
    "Rails": ("rails", "@rails"),
    "Node.js": ("node", "nodemon"),
    "FastAPI": ("fastapi", "uvicorn"),
    "NestJS": ("@nestjs",),
    "Svelte": ("svelte", "sveltekit"),
    "Ember": ("ember", "@ember"),
    "Meteor": ("meteor",),
    "Phoenix": ("phoenix",),
    "ASP.NET": ("@aspnet", "@microsoft/aspnetcore"),
})

DATABASES = _table({
    "MongoDB": ("mongodb", "mongoose", "mongodb-core", "@mongodb"),
    "PostgreSQL": ("pg", "postgres", "postgresql", "sequelize", "typeorm", "prisma"),
    "MySQL": ("mysql", "mysql2", "sequelize", "typeorm", "prisma"),
    "Redis": ("redis", "ioredis", "redis-client"),
    "SQLite": ("sqlite3", "better-sqlite3", "sequelize", "typeorm"),
    "Oracle": ("oracledb", "oracle"),
    "Firebase": ("firebase", "@firebase", "firebase-admin"),
    "Cassandra": ("cassandra-driver", "cassandra"),
    "Elasticsearch": ("elasticsearch", "@elastic/elasticsearch"),
    "DynamoDB": ("dynamodb", "@aws-sdk/client-dynamodb"),
    "Neo4j": ("neo4j", "neo4j-driver"),
    "MariaDB": ("mariadb", "mariadb-connector"),
    "CouchDB": ("couchdb", "nano"),
    "InfluxDB": ("influxdb", "@influxdata/influxdb-client"),
})

TOOLS = _table({
    "Git": ("git", "simple-git", "git-clone"),
    "Docker": ("docker", "docker-compose", "@docker"),
    "VS Code": ("vscode", "@vscode"),
    "AWS": ("aws-sdk", "@aws-sdk", "aws-lambda", "aws-cdk"),
    "Azure": ("@azure", "azure-functions", "azure-storage"),
    "GCP": ("@google-cloud", "google-cloud-storage", "firebase-admin"),
    "Kubernetes": ("kubernetes", "@kubernetes/client-node"),
    "Jenkins": ("jenkins", "jenkins-api"),
    "Nginx": ("nginx", "nginx-conf"),
    "Apache": ("apache", "apache2"),
    "Linux": ("linux", "node-linux"),
    "Windows": ("windows", "node-windows"),
    "MacOS": ("macos", "node-macos"),
    "Terraform": ("terraform", "@terraform"),
    "Ansible": ("ansible", "node-ansible"),
    "Puppet": ("puppet", "node-puppet"),
    "Chef": ("chef", "node-chef"),
    "CircleCI": ("circleci", "@circleci"),
    "Travis CI": ("travis-ci", "@travis-ci"),
    "GitHub Actions": ("@actions/core", "@actions/github"),
    "Webpack": ("webpack", "webpack-cli", "webpack-dev-server"),
    "Babel": ("@babel/core", "@babel/preset-env", "@babel/preset-react"),
    "TypeScript": ("typescript", "@types", "ts-node"),
    "ESLint": ("eslint", "@eslint"),
    "Prettier": ("prettier", "@prettier"),
    "Jest": ("jest", "@jest"),
    "Mocha": ("mocha", "@mocha"),
    "Cypress": ("cypress", "@cypress"),
    "Selenium": ("selenium-webdriver", "@selenium"),
    "Postman": ("postman", "@postman"),
    "Swagger": ("swagger", "@swagger"),
    "GraphQL": ("graphql", "@apollo/client", "apollo-server"),
})


# -- manifest parsing -------------------------------------------------------


def parse_package_json(text: str) -> frozenset[str] | None:
    """Dependency names declared in a ``package.json``, or None if the
    document is not a JSON object."""
    try:
        manifest = json.loads(text)
    except ValueError:
        return None
    if not isinstance(manifest, dict):
        return None

    names: set[str] = set()
    for section in _PACKAGE_SECTIONS:
        deps = manifest.get(section)
        if isinstance(deps, dict):
            names.update(str(name) for name in deps)
    return frozenset(names)


def parse_requirements(text: str) -> frozenset[str]:
    names: set[str] = set()
    for line in text.splitlines():
        line = line.split("#", 1)[0].strip()
        # -r, -e, --index-url and friends carry no package name
        if not line or line.startswith("-"):
            continue
        name = _REQUIREMENT_NAME_END.split(line, maxsplit=1)[0]
        if name:
            names.add(name)
    return frozenset(names)


# -- probing ----------------------------------------------------------------


def _fetch_manifest(client: GitHubClient, owner: str, repo: str, path: str) -> str | None:
    try:
        return client.get_file_text(owner, repo, path)
    except ReposcopeError as exc:
        logger.debug("No {} for {}/{}: {}", path, owner, repo, exc)
        return None


def probe_repository(client: GitHubClient, owner: str, repo: str) -> frozenset[str]:
    """Collect dependency names from a repository's manifests.

    Both manifests are fetched independently; a missing or unparsable file
    contributes nothing instead of failing the probe.
    """
    names: set[str] = set()

    text = _fetch_manifest(client, owner, repo, PACKAGE_MANIFEST)
    if text is not None:
        parsed = parse_package_json(text)
        if parsed is None:
            logger.debug("Unparsable {} in {}/{}", PACKAGE_MANIFEST, owner, repo)
        else:
            names |= parsed

    text = _fetch_manifest(client, owner, repo, REQUIREMENTS_MANIFEST)
    if text is not None:
        names |= parse_requirements(text)

    return frozenset(names)


# -- classification ---------------------------------------------------------


def match_labels(table: Mapping[str, tuple[str, ...]], names: Iterable[str]) -> frozenset[str]:
    lowered = [name.lower() for name in names]
    return frozenset(
        label
        for label, patterns in table.items()
        if any(pattern.lower() in name for pattern in patterns for name in lowered)
    )


def classify(names: Iterable[str]) -> TechStackFinding:
    names = list(names)
    return TechStackFinding(
        frameworks=match_labels(FRAMEWORKS, names),
        databases=match_labels(DATABASES, names),
        tools=match_labels(TOOLS, names),
    )
