"""
Shared fixtures for dep-arbiter tests.
"""

import os

import pytest

from dep_arbiter.cli_config import reset_config
from dep_arbiter.dependency import Dependency
from dep_arbiter.error_handling import get_error_handler


@pytest.fixture(autouse=True, scope="session")
def error_handler():
    """Create the shared error handler outside any CliRunner invocation."""
    return get_error_handler()


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep user and project config files and DEP_ARBITER_* variables out of tests."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(tmp_path)
    for key in list(os.environ):
        if key.startswith("DEP_ARBITER_"):
            monkeypatch.delenv(key)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def temp_dir(tmp_path):
    work = tmp_path / "work"
    work.mkdir()
    return work


@pytest.fixture
def make_dep():
    """Factory for compile scoped test dependencies."""

    def _make(group_id, artifact_id, version, scope="compile", classifier=None):
        return Dependency.create(
            group_id,
            artifact_id,
            scope,
            version,
            classifier=classifier,
            source_line="parsed dep line of text",
        )

    return _make


@pytest.fixture
def sample_dependency_list(temp_dir):
    """Output of mvn dependency:list with duplicates across modules."""
    content = """[INFO] Scanning for projects...
[INFO]
[INFO] --- maven-dependency-plugin:3.1.1:list (default-cli) @ sample-service ---
[INFO]
[INFO] The following files have been resolved:
[INFO]    com.sample:foo:jar:1.2.3:compile
[INFO]    com.sample:bar:jar:4.5.6:compile
[INFO]    junit:junit:jar:4.12:test
[INFO]    io.netty:netty-transport-native-epoll:jar:linux-x86_64:4.1.8:runtime
[INFO]    com.google.guava:guava:jar:20.0:compile -- module com.google.common [auto]
[INFO]    com.sample:foo:jar:1.3.0:compile
[INFO]    org.projectlombok:lombok:jar:1.16.20:provided (optional)
[INFO]
[INFO] ------------------------------------------------------------------------
[INFO] BUILD SUCCESS
[INFO] ------------------------------------------------------------------------
"""
    path = temp_dir / "deps.txt"
    path.write_text(content)
    return path


@pytest.fixture
def sample_pom_xml(temp_dir):
    content = """<?xml version="1.0" encoding="UTF-8"?>
<project xmlns="http://maven.apache.org/POM/4.0.0">
  <modelVersion>4.0.0</modelVersion>
  <groupId>com.sample</groupId>
  <artifactId>sample-service</artifactId>
  <version>1.0.0</version>
  <dependencies>
    <dependency>
      <groupId>com.sample</groupId>
      <artifactId>foo</artifactId>
      <version>2.0.0</version>
    </dependency>
    <dependency>
      <groupId>junit</groupId>
      <artifactId>junit</artifactId>
      <version>4.12</version>
      <scope>test</scope>
    </dependency>
    <dependency>
      <groupId>com.sample</groupId>
      <artifactId>managed</artifactId>
    </dependency>
    <dependency>
      <groupId>org.springframework</groupId>
      <artifactId>spring-core</artifactId>
      <version>${spring.version}</version>
    </dependency>
  </dependencies>
</project>
"""
    path = temp_dir / "pom.xml"
    path.write_text(content)
    return path


@pytest.fixture
def sample_build_gradle(temp_dir):
    content = """plugins {
    id 'java'
}

dependencies {
    implementation 'com.sample:bar:4.6.0'
    compileOnly 'org.projectlombok:lombok:1.18.2'
    runtimeOnly "org.postgresql:postgresql:42.2.5"
    testImplementation('junit:junit:4.12') {
        exclude group: 'org.hamcrest'
    }
    implementation 'com.sample:unversioned'
    // implementation 'com.sample:commented:1.0.0'
}
"""
    path = temp_dir / "build.gradle"
    path.write_text(content)
    return path


@pytest.fixture
def sample_rules_file(temp_dir):
    content = """# arbiter rules for the sample service
groupId=com.green pinnedVersion=100.50.25

groupId=com.red winningVersion=.*-patched
"""
    path = temp_dir / "rules.txt"
    path.write_text(content)
    return path
