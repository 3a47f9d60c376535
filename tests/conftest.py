"""
Shared fixtures for dep-module-mapper tests.
"""

import os
from pathlib import Path

import pytest

from module_mapper.cli_config import reset_config
from module_mapper.error_handling import setup_error_handling

SAMPLE_TREE = r"""[INFO] Scanning for projects...
[INFO]
[INFO] --- maven-dependency-plugin:3.6.0:tree (default-cli) @ shop-app ---
[INFO] com.example:shop-app:war:1.0.0
[INFO] +- org.acme:acme-core:jar:2.1.0:compile
[INFO] |  +- org.acme:acme-utils:jar:2.1.0:compile
[INFO] |  \- org.slf4j:slf4j-api:jar:1.7.36:compile
[INFO] +- com.fasterxml.jackson.core:jackson-databind:jar:2.15.2:compile
[INFO] |  +- com.fasterxml.jackson.core:jackson-annotations:jar:2.15.2:compile
[INFO] |  \- com.fasterxml.jackson.core:jackson-core:jar:2.15.2:compile
[INFO] +- org.acme:acme-natives:jar:linux-x86_64:2.1.0:runtime
[INFO] \- junit:junit:jar:4.13.2:test
[INFO]    \- org.hamcrest:hamcrest-core:jar:1.3:test
[INFO] ------------------------------------------------------------------------
[INFO] BUILD SUCCESS
"""

SAMPLE_LIST = """[INFO] --- maven-dependency-plugin:3.6.0:list (default-cli) @ shop-app ---
[INFO]
[INFO] The following files have been resolved:
[INFO]    org.acme:acme-core:jar:2.1.0:compile -- module org.acme.core
[INFO]    org.slf4j:slf4j-api:jar:1.7.36:compile
[INFO]    org.acme:acme-core:jar:2.1.0:compile
[INFO]    junit:junit:jar:4.13.2:test
[INFO]
"""

SAMPLE_POM = """<?xml version="1.0" encoding="UTF-8"?>
<project xmlns="http://maven.apache.org/POM/4.0.0">
  <modelVersion>4.0.0</modelVersion>
  <groupId>com.example</groupId>
  <artifactId>shop-app</artifactId>
  <version>1.0.0</version>
  <dependencyManagement>
    <dependencies>
      <dependency>
        <groupId>org.acme</groupId>
        <artifactId>acme-managed</artifactId>
        <version>2.1.0</version>
      </dependency>
    </dependencies>
  </dependencyManagement>
  <dependencies>
    <dependency>
      <groupId>org.acme</groupId>
      <artifactId>acme-core</artifactId>
      <version>${acme.version}</version>
    </dependency>
    <dependency>
      <groupId>junit</groupId>
      <artifactId>junit</artifactId>
      <version>4.13.2</version>
      <scope>test</scope>
    </dependency>
  </dependencies>
  <build>
    <plugins>
      <plugin>
        <artifactId>maven-enforcer-plugin</artifactId>
        <dependencies>
          <dependency>
            <groupId>org.codehaus.mojo</groupId>
            <artifactId>extra-enforcer-rules</artifactId>
            <version>1.7.0</version>
          </dependency>
        </dependencies>
      </plugin>
    </plugins>
  </build>
</project>
"""

SAMPLE_RULES_YAML = r"""modules:
  - name: org.acme.$1
    includes:
      - groupId: 'org\.acme'
        artifactId: 'acme-(.*)'
    excludes:
      - artifactId: acme-natives
  - name: com.fasterxml.jackson
    slot: "2"
    includes:
      - groupId: 'com\.fasterxml\.jackson\..*'
    properties:
      jboss.api: private
    dependencies:
      - javax.api
      - name: org.slf4j
        export: true
"""

SAMPLE_RULES_TOML = r"""[[modules]]
name = "org.acme.$1"
includes = [{ groupId = 'org\.acme', artifactId = 'acme-(.*)' }]
excludes = ["org.acme:acme-natives"]

[[modules]]
name = "com.fasterxml.jackson"
slot = "2"
includes = [{ groupId = 'com\.fasterxml\.jackson\..*' }]
"""


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Run every test in an empty directory with no config file or overrides."""
    for key in list(os.environ):
        if key.startswith("DEP_MODULE_MAPPER_"):
            monkeypatch.delenv(key)
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(tmp_path)
    reset_config()
    setup_error_handling()
    yield
    reset_config()


@pytest.fixture
def temp_dir(tmp_path) -> Path:
    """Directory for test input files."""
    path = tmp_path / "work"
    path.mkdir()
    return path


@pytest.fixture
def sample_dependency_tree(temp_dir) -> Path:
    path = temp_dir / "deps-tree.txt"
    path.write_text(SAMPLE_TREE, encoding="utf-8")
    return path


@pytest.fixture
def sample_dependency_list(temp_dir) -> Path:
    path = temp_dir / "deps-list.txt"
    path.write_text(SAMPLE_LIST, encoding="utf-8")
    return path


@pytest.fixture
def sample_pom_xml(temp_dir) -> Path:
    path = temp_dir / "pom.xml"
    path.write_text(SAMPLE_POM, encoding="utf-8")
    return path


@pytest.fixture
def sample_rules_yaml(temp_dir) -> Path:
    path = temp_dir / "modules.yaml"
    path.write_text(SAMPLE_RULES_YAML, encoding="utf-8")
    return path


@pytest.fixture
def sample_rules_toml(temp_dir) -> Path:
    path = temp_dir / "modules.toml"
    path.write_text(SAMPLE_RULES_TOML, encoding="utf-8")
    return path
