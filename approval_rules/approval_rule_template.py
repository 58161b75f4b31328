# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

from hashlib import md5
from typing import Any, Dict, List, Optional, Sequence

import aws_cdk as cdk
import aws_cdk.aws_codecommit as codecommit
import aws_cdk.aws_iam as iam
import aws_cdk.custom_resources as cr
from constructs import Construct

import constants
from approval_rules.associate_approval_rule_template import (
    AssociateApprovalRuleTemplate,
    IApprovalRuleTemplate,
)
from approval_rules.codecommit_calls import (
    LifecyclePhase,
    codecommit_call,
    create_codecommit_custom_resource,
)

__all__ = [
    "ApprovalMember",
    "ApprovalRuleTemplate",
    "IApprovalRuleTemplate",
    "render_approval_rule_template_content",
]

_FACTORY_KEY = object()


class ApprovalMember:
    """
    An approver of an approval rule template, taken from an IAM identity.

    Use ``from_role`` or ``from_user``; the name is not validated here, an
    unknown principal only fails when CodeCommit evaluates the rule.
    """

    def __init__(self, name: str, _key: object = None) -> None:
        if _key is not _FACTORY_KEY:
            raise TypeError(
                "ApprovalMember is created with ApprovalMember.from_role or ApprovalMember.from_user"
            )
        self.name = name

    @classmethod
    def from_role(cls, role: iam.IRole) -> "ApprovalMember":
        return cls(role.role_name, _FACTORY_KEY)

    @classmethod
    def from_user(cls, user: iam.IUser) -> "ApprovalMember":
        return cls(user.user_name, _FACTORY_KEY)

    @property
    def pool_member_pattern(self) -> str:
        # Matches the principal under any session name
        return constants.ApprovalRuleTemplateConstants.POOL_MEMBER_TEMPLATE.format(
            name=self.name
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ApprovalMember):
            return NotImplemented
        return self.name == other.name

    def __hash__(self) -> int:
        return hash(self.name)

    def __repr__(self) -> str:
        return f"ApprovalMember(name={self.name!r})"


def render_approval_rule_template_content(
    number_of_approvals_needed: int,
    destination_references: Optional[Sequence[str]] = None,
    approval_pool_members: Optional[Sequence[ApprovalMember]] = None,
) -> Dict[str, Any]:
    """
    Render the approval rule template document CodeCommit expects.

    Parameters
    ----------
    number_of_approvals_needed : int
        Approvals required before the pull request can be merged.
    destination_references : Sequence[str], optional
        Branch references the rule applies to. All references when omitted.
    approval_pool_members : Sequence[ApprovalMember], optional
        Principals whose approvals count. Anyone's approval counts when omitted.

    Returns
    -------
    dict
        The document, holding exactly one ``Approvers`` statement.
    """
    template_constants = constants.ApprovalRuleTemplateConstants

    statement: Dict[str, Any] = {
        "Type": template_constants.STATEMENT_TYPE,
        "NumberOfApprovalsNeeded": number_of_approvals_needed,
    }
    if approval_pool_members is not None:
        statement["ApprovalPoolMembers"] = [
            member.pool_member_pattern for member in approval_pool_members
        ]

    if destination_references is None:
        destination_references = template_constants.ALL_DESTINATION_REFERENCES

    return {
        "Version": template_constants.CONTENT_VERSION,
        "DestinationReferences": list(destination_references),
        "Statements": [statement],
    }


class _ImportedApprovalRuleTemplate(cdk.Resource):
    def __init__(
        self, scope: Construct, id_: str, approval_rule_template_name: str
    ) -> None:
        super().__init__(scope, id_)
        self.approval_rule_template_name = approval_rule_template_name


class ApprovalRuleTemplate(cdk.Resource):
    """
    A CodeCommit approval rule template, managed through SDK calls.

    Creation, content updates and deletion are issued by the AwsCustomResource
    provider. CodeCommit cannot rename a template, so the custom resource id is
    derived from an explicitly given name: a new name is a new resource, created
    before the previous template is deleted. Every repository passed in,
    or added later with ``add_repository``, gets its own association, which is
    only attempted once the template call has completed.
    """

    def __init__(
        self,
        scope: Construct,
        id_: str,
        number_of_approvals_needed: int,
        approval_rule_template_name: Optional[str] = None,
        destination_references: Optional[Sequence[str]] = None,
        approval_pool_members: Optional[Sequence[ApprovalMember]] = None,
        description: Optional[str] = None,
        repositories: Optional[Sequence[codecommit.IRepository]] = None,
    ) -> None:
        super().__init__(scope, id_)

        self._validate_number_of_approvals_needed(number_of_approvals_needed)

        self.approval_rule_template_name = (
            approval_rule_template_name
            or cdk.Names.unique_resource_name(
                self,
                max_length=constants.ApprovalRuleTemplateConstants.MAX_NAME_LENGTH,
            )
        )
        self.content = render_approval_rule_template_content(
            number_of_approvals_needed=number_of_approvals_needed,
            destination_references=destination_references,
            approval_pool_members=approval_pool_members,
        )
        self.associations: List[AssociateApprovalRuleTemplate] = []

        self._resource = self._create_custom_resource(
            self._custom_resource_id(approval_rule_template_name), description
        )

        for repository in repositories or []:
            self.add_repository(repository)

    @staticmethod
    def from_approval_rule_template_name(
        scope: Construct, id_: str, approval_rule_template_name: str
    ) -> IApprovalRuleTemplate:
        return _ImportedApprovalRuleTemplate(scope, id_, approval_rule_template_name)

    @property
    def custom_resource(self) -> cr.AwsCustomResource:
        return self._resource

    def add_repository(
        self, repository: codecommit.IRepository
    ) -> AssociateApprovalRuleTemplate:
        association = AssociateApprovalRuleTemplate(
            self,
            f"Associate{len(self.associations)}",
            approval_rule_template=self,
            repository=repository,
        )
        association.node.add_dependency(self._resource)
        self.associations.append(association)

        return association

    def _validate_number_of_approvals_needed(
        self, number_of_approvals_needed: int
    ) -> None:
        if cdk.Token.is_unresolved(number_of_approvals_needed):
            return

        if number_of_approvals_needed < 0:
            raise ValueError(
                f"number_of_approvals_needed must be 0 or more, got {number_of_approvals_needed}"
            )

        if number_of_approvals_needed == 0:
            cdk.Annotations.of(self).add_warning_v2(
                "approval-rules:noApprovalsNeeded",
                "The approval rule template needs no approvals, so its rule is always satisfied",
            )

    @staticmethod
    def _custom_resource_id(approval_rule_template_name: Optional[str]) -> str:
        # Generated names follow the construct path, which already fixes the logical id
        if approval_rule_template_name is None or cdk.Token.is_unresolved(
            approval_rule_template_name
        ):
            return "Resource"

        name_hash = md5(approval_rule_template_name.encode("utf-8")).hexdigest()
        return f"Resource{name_hash[:8].upper()}"

    def _create_custom_resource(
        self, id_: str, description: Optional[str]
    ) -> cr.AwsCustomResource:
        serialized_content = cdk.Stack.of(self).to_json_string(self.content)
        template_id = cr.PhysicalResourceId.from_response(
            constants.CodeCommitApi.APPROVAL_RULE_TEMPLATE_ID_RESPONSE_PATH
        )

        return create_codecommit_custom_resource(
            self,
            id_,
            resource_type=constants.ApprovalRuleTemplateConstants.RESOURCE_TYPE,
            calls={
                LifecyclePhase.CREATE: codecommit_call(
                    constants.CodeCommitApi.CREATE_APPROVAL_RULE_TEMPLATE,
                    {
                        "approvalRuleTemplateName": self.approval_rule_template_name,
                        "approvalRuleTemplateContent": serialized_content,
                        "approvalRuleTemplateDescription": description,
                    },
                    physical_resource_id=template_id,
                ),
                LifecyclePhase.UPDATE: codecommit_call(
                    constants.CodeCommitApi.UPDATE_APPROVAL_RULE_TEMPLATE_CONTENT,
                    {
                        "approvalRuleTemplateName": self.approval_rule_template_name,
                        "newRuleContent": serialized_content,
                    },
                    physical_resource_id=template_id,
                ),
                LifecyclePhase.DELETE: codecommit_call(
                    constants.CodeCommitApi.DELETE_APPROVAL_RULE_TEMPLATE,
                    {"approvalRuleTemplateName": self.approval_rule_template_name},
                ),
            },
        )
