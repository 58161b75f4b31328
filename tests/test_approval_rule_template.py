# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

import json
from unittest.mock import Mock

import aws_cdk as cdk
import aws_cdk.aws_codecommit as codecommit
import pytest
from aws_cdk.assertions import Annotations, Match, Template
from hypothesis import given, strategies as st

from approval_rules.approval_rule_template import (
    ApprovalMember,
    ApprovalRuleTemplate,
    render_approval_rule_template_content,
)

TEMPLATE_TYPE = "Custom::ApprovalRuleTemplate"
ASSOCIATION_TYPE = "Custom::AssociateApprovalRuleTemplateWithRepository"

principal_names = st.from_regex(r"[A-Za-z0-9_+=,.@-]{1,64}", fullmatch=True)


def member_from_role(name: str) -> ApprovalMember:
    return ApprovalMember.from_role(Mock(role_name=name))


def custom_resource_logical_id(template: ApprovalRuleTemplate) -> str:
    # AwsCustomResource > CustomResource > CfnResource
    cfn_resource = template.custom_resource.node.default_child.node.default_child
    return cdk.Stack.of(template).get_logical_id(cfn_resource)


class TestApprovalMember:
    def test_from_role_uses_role_name(self):
        member = member_from_role("build-role")

        assert member.name == "build-role"
        assert member.pool_member_pattern == "CodeCommitApprovers:build-role/*"

    def test_from_user_uses_user_name(self):
        member = ApprovalMember.from_user(Mock(user_name="reviewer"))

        assert member.pool_member_pattern == "CodeCommitApprovers:reviewer/*"

    def test_cannot_be_constructed_directly(self):
        with pytest.raises(TypeError):
            ApprovalMember("build-role")

    def test_members_with_same_name_are_equal(self):
        assert member_from_role("build-role") == ApprovalMember.from_user(
            Mock(user_name="build-role")
        )


class TestRenderApprovalRuleTemplateContent:
    def test_defaults_to_all_destination_references(self):
        content = render_approval_rule_template_content(number_of_approvals_needed=2)

        assert content == {
            "Version": "2018-11-08",
            "DestinationReferences": ["*"],
            "Statements": [{"Type": "Approvers", "NumberOfApprovalsNeeded": 2}],
        }

    def test_keeps_explicit_empty_destination_references(self):
        content = render_approval_rule_template_content(
            number_of_approvals_needed=1, destination_references=[]
        )

        assert content["DestinationReferences"] == []

    def test_renders_pool_members(self):
        content = render_approval_rule_template_content(
            number_of_approvals_needed=1,
            destination_references=["refs/heads/main"],
            approval_pool_members=[
                member_from_role("build-role"),
                ApprovalMember.from_user(Mock(user_name="reviewer")),
            ],
        )

        assert content["Statements"] == [
            {
                "Type": "Approvers",
                "NumberOfApprovalsNeeded": 1,
                "ApprovalPoolMembers": [
                    "CodeCommitApprovers:build-role/*",
                    "CodeCommitApprovers:reviewer/*",
                ],
            }
        ]

    @given(
        number_of_approvals_needed=st.integers(min_value=0, max_value=25),
        destination_references=st.one_of(
            st.none(), st.lists(st.sampled_from(["refs/heads/main", "refs/heads/release/*"]))
        ),
        member_names=st.one_of(st.none(), st.lists(principal_names, max_size=5)),
    )
    def test_always_renders_a_single_approvers_statement(
        self, number_of_approvals_needed, destination_references, member_names
    ):
        members = (
            None
            if member_names is None
            else [member_from_role(name) for name in member_names]
        )

        content = render_approval_rule_template_content(
            number_of_approvals_needed=number_of_approvals_needed,
            destination_references=destination_references,
            approval_pool_members=members,
        )

        assert len(content["Statements"]) == 1
        statement = content["Statements"][0]
        assert statement["Type"] == "Approvers"
        assert statement["NumberOfApprovalsNeeded"] == number_of_approvals_needed
        if destination_references is None:
            assert content["DestinationReferences"] == ["*"]
        else:
            assert content["DestinationReferences"] == destination_references
        if members is None:
            assert "ApprovalPoolMembers" not in statement
        else:
            assert statement["ApprovalPoolMembers"] == [
                f"CodeCommitApprovers:{name}/*" for name in member_names
            ]


class TestApprovalRuleTemplate:
    def test_declares_template_lifecycle_calls(self, stack, load_sdk_call):
        ApprovalRuleTemplate(
            stack,
            "Template",
            approval_rule_template_name="RequireBuild",
            number_of_approvals_needed=1,
            destination_references=["refs/heads/main"],
            description="Requires a passing build",
        )

        resources = Template.from_stack(stack).find_resources(TEMPLATE_TYPE)
        assert len(resources) == 1
        (resource,) = resources.values()

        create = load_sdk_call(resource, "Create")
        assert create["service"] == "@aws-sdk/client-codecommit"
        assert create["action"] == "CreateApprovalRuleTemplateCommand"
        assert create["physicalResourceId"] == {
            "responsePath": "approvalRuleTemplate.approvalRuleTemplateId"
        }
        assert create["parameters"]["approvalRuleTemplateName"] == "RequireBuild"
        assert (
            create["parameters"]["approvalRuleTemplateDescription"]
            == "Requires a passing build"
        )
        assert json.loads(create["parameters"]["approvalRuleTemplateContent"]) == {
            "Version": "2018-11-08",
            "DestinationReferences": ["refs/heads/main"],
            "Statements": [{"Type": "Approvers", "NumberOfApprovalsNeeded": 1}],
        }

        update = load_sdk_call(resource, "Update")
        assert update["action"] == "UpdateApprovalRuleTemplateContentCommand"
        assert update["parameters"]["approvalRuleTemplateName"] == "RequireBuild"
        assert json.loads(update["parameters"]["newRuleContent"]) == json.loads(
            create["parameters"]["approvalRuleTemplateContent"]
        )
        assert update["physicalResourceId"] == create["physicalResourceId"]

        delete = load_sdk_call(resource, "Delete")
        assert delete["action"] == "DeleteApprovalRuleTemplateCommand"
        assert delete["parameters"] == {"approvalRuleTemplateName": "RequireBuild"}

    def test_omits_absent_description(self, stack, load_sdk_call):
        ApprovalRuleTemplate(
            stack,
            "Template",
            approval_rule_template_name="RequireBuild",
            number_of_approvals_needed=1,
        )

        (resource,) = Template.from_stack(stack).find_resources(TEMPLATE_TYPE).values()

        parameters = load_sdk_call(resource, "Create")["parameters"]
        assert "approvalRuleTemplateDescription" not in parameters

    def test_generates_a_name_when_none_is_given(self, stack):
        template = ApprovalRuleTemplate(stack, "Template", number_of_approvals_needed=1)

        assert template.approval_rule_template_name
        assert not cdk.Token.is_unresolved(template.approval_rule_template_name)
        assert len(template.approval_rule_template_name) <= 100

    def test_rejects_negative_number_of_approvals(self, stack):
        with pytest.raises(ValueError):
            ApprovalRuleTemplate(stack, "Template", number_of_approvals_needed=-1)

    def test_warns_when_no_approvals_are_needed(self, stack):
        ApprovalRuleTemplate(stack, "Template", number_of_approvals_needed=0)

        Annotations.from_stack(stack).has_warning(
            "*", Match.string_like_regexp("needs no approvals")
        )

    def test_associates_every_repository_after_the_template(self, stack, load_sdk_call):
        repositories = [
            codecommit.Repository.from_repository_name(stack, f"Repo{name}", name)
            for name in ("repo-a", "repo-b")
        ]

        template = ApprovalRuleTemplate(
            stack,
            "Template",
            approval_rule_template_name="RequireBuild",
            number_of_approvals_needed=1,
            repositories=repositories,
        )

        assert len(template.associations) == 2

        template_logical_id = custom_resource_logical_id(template)
        synthesized = Template.from_stack(stack)
        assert list(synthesized.find_resources(TEMPLATE_TYPE)) == [template_logical_id]
        associations = synthesized.find_resources(ASSOCIATION_TYPE)
        assert len(associations) == 2

        association_ids = set(associations.keys())
        repository_names = set()
        for logical_id, association in associations.items():
            depends_on = set(association.get("DependsOn", []))
            assert template_logical_id in depends_on
            assert not depends_on & (association_ids - {logical_id})

            parameters = load_sdk_call(association, "Create")["parameters"]
            assert parameters["approvalRuleTemplateName"] == "RequireBuild"
            repository_names.add(parameters["repositoryName"])

        assert repository_names == {"repo-a", "repo-b"}

    def test_add_repository_depends_on_the_template(self, stack, repository):
        template = ApprovalRuleTemplate(
            stack,
            "Template",
            approval_rule_template_name="RequireBuild",
            number_of_approvals_needed=1,
        )

        association = template.add_repository(repository)

        assert association.node.id == "Associate0"
        assert template.associations == [association]

        synthesized = Template.from_stack(stack)
        synthesized.has_resource(
            ASSOCIATION_TYPE,
            {"DependsOn": Match.array_with([custom_resource_logical_id(template)])},
        )

    def test_can_reference_an_existing_template(self, stack):
        template = ApprovalRuleTemplate.from_approval_rule_template_name(
            stack, "Imported", "ExistingTemplate"
        )

        assert template.approval_rule_template_name == "ExistingTemplate"
        Template.from_stack(stack).resource_count_is(TEMPLATE_TYPE, 0)

    def test_renaming_replaces_the_template_resource(self):
        def logical_id_for(name: str) -> str:
            stack = cdk.Stack(cdk.App(), "TestStack")
            template = ApprovalRuleTemplate(
                stack,
                "Template",
                approval_rule_template_name=name,
                number_of_approvals_needed=1,
            )
            logical_id = custom_resource_logical_id(template)
            assert list(Template.from_stack(stack).find_resources(TEMPLATE_TYPE)) == [
                logical_id
            ]
            return logical_id

        assert logical_id_for("RequireBuild") == logical_id_for("RequireBuild")
        assert logical_id_for("RequireBuild") != logical_id_for("RequireReview")

    def test_generated_name_keeps_the_default_resource_id(self, stack):
        template = ApprovalRuleTemplate(stack, "Template", number_of_approvals_needed=1)

        assert template.custom_resource.node.id == "Resource"
