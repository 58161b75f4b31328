#!/usr/bin/env python3

# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

import dataclasses

import aws_cdk as cdk
import cdk_nag

import constants
from toolchain.toolchain_stack import ToolchainStack

app = cdk.App()

demo_parameters = constants.Toolchain.DEMO_PARAMETERS
repository_name = app.node.try_get_context(
    constants.Toolchain.REPOSITORY_NAME_CONTEXT_KEY
)
if repository_name:
    demo_parameters = dataclasses.replace(
        demo_parameters, repository_name=repository_name
    )

ToolchainStack(
    app,
    f"{constants.Toolchain.APP_NAME}-Toolchain",
    demo_parameters=demo_parameters,
    seed_code_path=app.node.try_get_context(
        constants.Toolchain.SEED_CODE_PATH_CONTEXT_KEY
    ),
    env=constants.TOOLCHAIN_ENVIRONMENT,
)

cdk.Aspects.of(app).add(cdk_nag.AwsSolutionsChecks())
app.synth()
