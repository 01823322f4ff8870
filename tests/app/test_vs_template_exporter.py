from __future__ import annotations

import xml.etree.ElementTree as ET
from pathlib import Path

import pytest

from tplgen.adapters.xml_template_loader import XmlTemplateLoader
from tplgen.app.export.service import DESCRIPTOR_NAME, VSTEMPLATE_NAMESPACE, ExportRequest, VsTemplateExporter
from tplgen.app.generation.service import RunStatus
from tplgen.domain.diagnostics import GeneratorError, LogLevel
from tplgen.domain.template import SourceLanguage
from tplgen.settings import GeneratorSettings

NS = {"vs": VSTEMPLATE_NAMESPACE}

EXPORT_TEMPLATE = """<Template>
  <Name>Desktop Game</Name>
  <Description>A desktop game.</Description>
  <Icon>art/icon.png</Icon>
  <PreviewImage>preview.png</PreviewImage>
  <Var name="ProjectName" semantic="projectName">Game1</Var>
  <Var name="Company" semantic="organization">Acme</Var>
  <Var name="Title">My Game</Var>
  <Project src="Game.{{_sourceExt}}proj" dst="{{ProjectName}}.{{_sourceExt}}proj">
    <File src="Game1.{{_sourceExt}}"/>
    <File src="Content/Content.mgcb" raw="true"/>
    <File src="Content/Fonts/Font.spritefont"/>
  </Project>
</Template>
"""

EXPORT_FILES = {
    "Game.csproj": "<Project Guid='{{#newGuid}}'>{{ProjectName}}</Project>",
    "Game1.cs": "// {{Title}} (c) {{#year}} {{Company}}\n[assembly: Guid(\"{{#newGuid}}\")]\n",
    "Content/Content.mgcb": "raw {{#newGuid}}",
    "Content/Fonts/Font.spritefont": "<Font/>",
    "art/icon.png": b"\x89PNG icon",
    "preview.png": b"\x89PNG preview",
}


def _exporter(**overrides) -> VsTemplateExporter:
    values = {"raise_on_error": False, "log_level": LogLevel.NONE}
    values.update(overrides)
    return VsTemplateExporter(XmlTemplateLoader(), GeneratorSettings(**values))


def test_exports_files_with_ide_parameters(tmp_path: Path, make_template) -> None:
    template = make_template(EXPORT_TEMPLATE, EXPORT_FILES)
    out = tmp_path / "vs"

    result = _exporter().export(template, ExportRequest(output=out))

    assert result.status is RunStatus.SUCCESS
    assert (out / "Game.csproj").read_text(encoding="utf-8") == "<Project Guid='$guid1$'>$safeprojectname$</Project>"
    assert (out / "Game1.cs").read_text(encoding="utf-8") == (
        '// My Game (c) $year$ $registeredorganization$\n[assembly: Guid("$guid2$")]\n'
    )
    assert (out / "Content" / "Content.mgcb").read_text(encoding="utf-8") == "raw {{#newGuid}}"
    assert (out / "Content" / "Fonts" / "Font.spritefont").is_file()
    assert (out / "icon.png").read_bytes() == b"\x89PNG icon"
    assert (out / "preview.png").read_bytes() == b"\x89PNG preview"
    assert result.descriptor == out.resolve() / DESCRIPTOR_NAME


def test_descriptor_mirrors_tree(tmp_path: Path, make_template) -> None:
    template = make_template(EXPORT_TEMPLATE, EXPORT_FILES)
    out = tmp_path / "vs"
    _exporter().export(template, ExportRequest(output=out))

    root = ET.parse(out / DESCRIPTOR_NAME).getroot()
    assert root.tag == f"{{{VSTEMPLATE_NAMESPACE}}}VSTemplate"
    assert root.get("Version") == "3.0.0"
    assert root.get("Type") == "Project"
    data = root.find("vs:TemplateData", NS)
    assert data.findtext("vs:Name", namespaces=NS) == "Desktop Game"
    assert data.findtext("vs:ProjectType", namespaces=NS) == "CSharp"
    assert data.findtext("vs:NumberOfParentCategoriesToRollUp", namespaces=NS) == "1"
    assert data.findtext("vs:Icon", namespaces=NS) == "icon.png"
    assert data.findtext("vs:PreviewImage", namespaces=NS) == "preview.png"

    project = root.find("vs:TemplateContent/vs:Project", NS)
    assert project.get("File") == "Game.csproj"
    assert project.get("TargetFileName") == "$safeprojectname$.csproj"
    assert project.get("ReplaceParameters") == "true"

    item = project.find("vs:ProjectItem", NS)
    assert item.text == "Game1.cs"
    assert item.get("TargetFileName") == "Game1.cs"
    content = project.find("vs:Folder", NS)
    assert (content.get("Name"), content.get("TargetFolderName")) == ("Content", "Content")
    mgcb = content.find("vs:ProjectItem", NS)
    assert mgcb.text == "Content.mgcb"
    assert mgcb.get("ReplaceParameters") == "false"
    fonts = content.find("vs:Folder", NS)
    assert fonts.get("Name") == "Fonts"
    assert fonts.find("vs:ProjectItem", NS).text == "Font.spritefont"


def test_language_sets_project_type(tmp_path: Path, make_template) -> None:
    files = dict(EXPORT_FILES)
    files["Game.vbproj"] = "<Project/>"
    files["Game1.vb"] = "Module Game"
    template = make_template(EXPORT_TEMPLATE, files)
    out = tmp_path / "vs"

    result = _exporter().export(template, ExportRequest(output=out, language=SourceLanguage.VISUALBASIC))

    assert result.status is RunStatus.SUCCESS
    root = ET.parse(out / DESCRIPTOR_NAME).getroot()
    assert root.findtext("vs:TemplateData/vs:ProjectType", namespaces=NS) == "VisualBasic"
    assert (out / "Game.vbproj").is_file()


def test_two_projects_are_rejected(tmp_path: Path, make_template) -> None:
    template = make_template(
        "<Template><Project src='a.csproj'/><Project src='b.csproj'/></Template>",
        {"a.csproj": "a", "b.csproj": "b"},
    )
    out = tmp_path / "vs"

    result = _exporter().export(template, ExportRequest(output=out))

    assert result.status is RunStatus.FATAL
    errors = [item.message for item in result.diagnostics if item.level == LogLevel.ERROR]
    assert errors == ["VS templates with more than 1 project are not supported."]
    assert not out.exists()


def test_two_projects_raise_with_raising_sink(tmp_path: Path, make_template) -> None:
    template = make_template(
        "<Template><Project src='a.csproj'/><Project src='b.csproj'/></Template>",
        {"a.csproj": "a", "b.csproj": "b"},
    )
    with pytest.raises(GeneratorError):
        _exporter(raise_on_error=True).export(template, ExportRequest(output=tmp_path / "vs"))


def test_unknown_semantic_skips_file(tmp_path: Path, make_template) -> None:
    template = make_template(
        "<Template><Var name='c' semantic='colour'>red</Var>"
        "<Project src='p.csproj'><File src='a.cs'/></Project></Template>",
        {"p.csproj": "<Project/>", "a.cs": "// {{c}}"},
    )
    out = tmp_path / "vs"

    result = _exporter().export(template, ExportRequest(output=out))

    assert result.status is RunStatus.PARTIAL
    assert (out / "p.csproj").is_file()
    assert not (out / "a.cs").exists()
    assert (out / DESCRIPTOR_NAME).is_file()


def test_missing_icon_is_reported(tmp_path: Path, make_template) -> None:
    template = make_template("<Template><Icon>none.png</Icon><Project src='p.csproj'/></Template>", {"p.csproj": "p"})
    out = tmp_path / "vs"

    result = _exporter().export(template, ExportRequest(output=out))

    assert result.status is RunStatus.PARTIAL
    assert (out / DESCRIPTOR_NAME).is_file()
    root = ET.parse(out / DESCRIPTOR_NAME).getroot()
    assert root.findtext("vs:TemplateData/vs:DefaultName", namespaces=NS) == "Project"


def test_non_empty_output_is_refused(tmp_path: Path, make_template) -> None:
    template = make_template(EXPORT_TEMPLATE, EXPORT_FILES)
    out = tmp_path / "vs"
    out.mkdir()
    (out / "existing").write_text("x", encoding="utf-8")
    result = _exporter().export(template, ExportRequest(output=out))
    assert result.status is RunStatus.FATAL
    assert not (out / DESCRIPTOR_NAME).exists()


def test_backslashed_source_is_exported(tmp_path: Path, make_template) -> None:
    template = make_template(
        "<Template><Project src='Game.csproj'><File src='Content\\Content.mgcb' raw='true'/></Project></Template>",
        {"Game.csproj": "<Project/>", "Content/Content.mgcb": "raw"},
    )
    out = tmp_path / "vs"

    result = _exporter().export(template, ExportRequest(output=out))

    assert result.status is RunStatus.SUCCESS
    assert (out / "Content" / "Content.mgcb").read_text(encoding="utf-8") == "raw"


def test_source_path_guid_is_numbered_once(tmp_path: Path, make_template) -> None:
    template = make_template(
        "<Template><Project src='Game.csproj'><File src='{{#newGuid}}.txt'/></Project></Template>",
        {"Game.csproj": "<Project/>", "$guid1$.txt": "id {{#newGuid}}"},
    )
    out = tmp_path / "vs"

    result = _exporter().export(template, ExportRequest(output=out))

    assert result.status is RunStatus.SUCCESS
    assert (out / "$guid1$.txt").read_text(encoding="utf-8") == "id $guid2$"
